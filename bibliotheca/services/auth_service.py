from flask import current_app
from flask_jwt_extended import create_access_token
from werkzeug.security import generate_password_hash, check_password_hash

from bibliotheca.errors import AuthError, InvalidInput
from bibliotheca.models.user import User
from bibliotheca.repositories.user_repo import UserRepo

PASSWORD_MIN_LENGTH = 6


class AuthService:
    @staticmethod
    def signup(email: str, password: str, confirm_password: str = None, role: str = "user") -> User:
        email = (email or "").strip().lower()
        password = password or ""

        if not email or not password:
            raise InvalidInput("Email and password are required")
        if len(password) < PASSWORD_MIN_LENGTH:
            raise InvalidInput(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")
        if confirm_password is not None and password != confirm_password:
            raise InvalidInput("Passwords do not match")
        if UserRepo.get_by_email(email):
            raise InvalidInput("An account with this email already exists")

        user = User(email=email, password_hash=generate_password_hash(password), role=role)
        UserRepo.create(user)
        current_app.logger.info("New user signed up: %s", user.email)
        return user

    @staticmethod
    def login(email: str, password: str):
        email = (email or "").strip().lower()
        if not email or not password:
            raise InvalidInput("Email and password are required")

        user = UserRepo.get_by_email(email)
        if not user or not check_password_hash(user.password_hash, password):
            raise AuthError()

        token = create_access_token(
            identity=str(user.id),
            additional_claims={"role": user.role, "email": user.email},
        )
        current_app.logger.info("User logged in: %s", user.email)
        return token, user

    @staticmethod
    def ensure_admin(email: str, password: str) -> User:
        """Create the admin account, or promote an existing one."""
        email = (email or "").strip().lower()
        user = UserRepo.get_by_email(email)
        if user is None:
            return AuthService.signup(email, password, role="admin")
        if user.role != "admin":
            user.role = "admin"
            UserRepo.commit()
        return user
