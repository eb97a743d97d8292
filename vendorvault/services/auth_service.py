from decimal import Decimal

from flask_jwt_extended import create_access_token

from vendorvault.enums import UserRole
from vendorvault.exceptions import AuthenticationError, DomainError, DuplicateAccountError, NotFoundError
from vendorvault.extensions import db
from vendorvault.models.user import SellerProfile, User
from vendorvault.models.wallet import Wallet


class AuthService:
    """Accounts and access tokens for buyers, sellers and admins"""

    @staticmethod
    def register_user(email: str, username: str, password: str, role: str, **kwargs) -> User:
        if User.query.filter_by(email=email).first():
            raise DuplicateAccountError("Email already exists")

        if User.query.filter_by(username=username).first():
            raise DuplicateAccountError("Username already exists")

        role = UserRole(role)
        if role == UserRole.ADMIN:
            raise DomainError("Admin accounts cannot self-register")

        try:
            user = User(
                email=email,
                username=username,
                role=role,
                full_name=kwargs.get("full_name"),
            )
            user.set_password(password)
            db.session.add(user)
            db.session.flush()

            # Every account gets a wallet for refunds and wallet checkout
            db.session.add(Wallet(user_id=user.id))

            if role == UserRole.SELLER:
                profile = SellerProfile(
                    user_id=user.id,
                    store_name=kwargs.get("store_name") or username,
                )
                if kwargs.get("commission_rate") is not None:
                    profile.commission_rate = Decimal(str(kwargs["commission_rate"]))
                db.session.add(profile)

            db.session.commit()
        except Exception:
            db.session.rollback()
            raise

        return user

    @staticmethod
    def login_user(username: str, password: str) -> dict:
        """Check credentials and issue an access token"""
        user = User.query.filter_by(username=username).first()

        if not user or not user.check_password(password):
            raise AuthenticationError("Invalid credentials")

        if not user.is_active or user.is_deleted:
            raise AuthenticationError("Account is deactivated")

        return {
            "access_token": create_access_token(identity=user.id),
            "user": user.to_dict(),
        }

    @staticmethod
    def get_user_by_id(user_id: str) -> User:
        user = db.session.get(User, user_id)
        if not user or user.is_deleted:
            raise NotFoundError("User not found")
        return user
