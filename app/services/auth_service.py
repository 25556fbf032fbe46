# app/services/auth_service.py
import logging
import uuid
from collections.abc import Set

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.core.errors import Forbidden, Unauthorized, UserNotFound
from app.core.google_oauth import GoogleAssertion
from app.core.security import TokenPayload, create_access_token, decode_access_token
from app.models.user import User
from app.repositories.user_repo import UserRepository

logger = logging.getLogger(__name__)


class AuthService:
    """
    Identity provisioning and privilege checks.

    Responsibilities:
      - find or create the local User for a verified Google identity
      - keep role/avatar in sync with the allow-list and the provider
      - mint session tokens
      - re-derive admin privilege from live state on every admin call

    The admin allow-list is passed in by the caller (see
    `app.core.auth.get_admin_allow_list`) so it can be reloaded or swapped
    without touching this class.
    """

    def __init__(self, repo: UserRepository):
        self.repo = repo

    @staticmethod
    def is_admin_email(email: str, allow_list: Set[str]) -> bool:
        return email.strip().lower() in allow_list

    # ----- Provisioning -----

    def find_or_create_user(
        self,
        session: Session,
        assertion: GoogleAssertion,
        allow_list: Set[str],
    ) -> User:
        """
        Return the User for `assertion.email`, creating it on first login.

        New users get role 'admin' when on the allow-list, else 'customer'.
        Existing users are promoted to admin when newly allow-listed; they
        are never demoted here (demotion happens at the admin gate). A
        changed avatar is saved in a separate write.
        """
        email = assertion.email.strip().lower()
        is_admin = self.is_admin_email(email, allow_list)
        user = self.repo.get_by_email(session, email)

        if user is None:
            user = User(
                email=email,
                name=assertion.name,
                picture=assertion.picture,
                google_id=assertion.sub,
                role="admin" if is_admin else "customer",
            )
            user = self.repo.create(session, user)
            logger.info("Provisioned user %s with role %s", user.email, user.role)
            return user

        if is_admin and user.role != "admin":
            user.role = "admin"
            user = self.repo.update(session, user)
            logger.info("Promoted %s to admin", user.email)

        if assertion.picture and user.picture != assertion.picture:
            user.picture = assertion.picture
            user = self.repo.update(session, user)

        return user

    def issue_token(self, user: User) -> str:
        return create_access_token(user)

    # ----- Privilege checks -----

    def authorize_admin(
        self,
        session: Session,
        token: str | None,
        allow_list: Set[str],
    ) -> User:
        """
        Re-derive admin privilege for a bearer token.

        Steps (first failure wins):
          1. verify signature/expiry            -> Unauthorized
          2. re-fetch user; stored role admin?  -> Forbidden
          3. email still on the allow-list?     -> Forbidden

        The role claim inside the token is never trusted on its own. A
        database error during step 2 is treated as Forbidden.
        """
        payload = self.verify_session(token)

        try:
            user = self.repo.get_by_id(session, payload.user_id)
        except SQLAlchemyError:
            logger.exception("Admin check could not load user %s", payload.user_id)
            raise Forbidden("Admin access denied")

        if user is None or user.role != "admin":
            logger.warning("Admin access denied for %s: stored role", payload.email)
            raise Forbidden()

        if not self.is_admin_email(user.email, allow_list):
            logger.warning("Admin access denied for %s: not on allow-list", user.email)
            raise Forbidden()

        return user

    def verify_session(self, token: str | None) -> TokenPayload:
        """
        Verify a bearer token without touching the database.

        Raises:
            Unauthorized (SessionExpired / SessionInvalid): bad or missing token.
        """
        if not token:
            raise Unauthorized("No token provided")
        return decode_access_token(token)

    # ----- Profile -----

    def get_user(self, session: Session, user_id: uuid.UUID) -> User:
        user = self.repo.get_by_id(session, user_id)
        if not user:
            raise UserNotFound()
        return user

    def update_theme(self, session: Session, user: User, theme: str) -> User:
        user.theme = theme
        return self.repo.update(session, user)
