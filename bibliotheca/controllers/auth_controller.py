from flask import Blueprint, jsonify, session
from flask_jwt_extended import jwt_required, get_jwt_identity, get_jwt

from bibliotheca.errors import LibraryError
from bibliotheca.repositories.user_repo import UserRepo
from bibliotheca.services.auth_service import AuthService
from bibliotheca.utils.responses import json_error, library_error, request_data

auth_bp = Blueprint("auth", __name__)


def _start_session(user):
    session.clear()
    session.permanent = True
    session["user_id"] = int(user.id)
    session["user_email"] = user.email
    session["role"] = user.role


def _user_json(user):
    return {"id": user.id, "email": user.email, "role": user.role}


@auth_bp.post("/auth/signup", endpoint="signup")
def signup():
    data = request_data()
    try:
        user = AuthService.signup(
            email=data.get("email"),
            password=data.get("password"),
            confirm_password=data.get("confirmPassword"),
        )
    except LibraryError as e:
        return library_error(e)

    _start_session(user)
    return jsonify({"success": True, "user": _user_json(user)}), 201


@auth_bp.post("/auth/login", endpoint="login")
def login():
    data = request_data()
    try:
        token, user = AuthService.login(data.get("email"), data.get("password"))
    except LibraryError as e:
        return library_error(e)

    _start_session(user)
    return jsonify({"success": True, "access_token": token, "user": _user_json(user)})


@auth_bp.post("/auth/logout", endpoint="logout")
def logout():
    session.clear()
    return jsonify({"success": True, "message": "Logged out"})


@auth_bp.get("/api/auth/status", endpoint="status")
def status():
    if session.get("user_id"):
        return jsonify({"loggedIn": True, "email": session.get("user_email")})
    return jsonify({"loggedIn": False})


@auth_bp.get("/auth/me", endpoint="me")
@jwt_required()
def me():
    user = UserRepo.get_by_id(int(get_jwt_identity()))
    if user is None:
        return json_error("User not found", 404)
    claims = get_jwt()
    return jsonify({
        "success": True,
        "user": {"id": user.id, "email": user.email, "role": claims.get("role", user.role)},
    })
