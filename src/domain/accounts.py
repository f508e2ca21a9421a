"""
User account service - profile self-service and admin user management.

Admin operations re-read the caller from the store and require the admin
role; a stale token carrying an old role is refused.
"""

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Any

from . import notifications
from .exceptions import (
    DependencyFailure,
    EmailAlreadyRegistered,
    Forbidden,
    InvalidTransition,
    RecordNotFound,
    ValidationFailure,
)
from .models import (
    AccountPatch,
    NewAccount,
    Page,
    Principal,
    ProfileUpdate,
    PublicProfile,
    Role,
    Upload,
    User,
    UserQuery,
    normalize_email,
)
from .passwords import DEFAULT_COST, hash_secret
from .ports import BlobStore, Clock, EmailSender, UserRepository, system_clock

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


@dataclass
class AccountService:
    """Domain service for user accounts outside the onboarding flow."""

    users: UserRepository
    blobs: BlobStore
    email_sender: EmailSender
    clock: Clock = system_clock
    reset_ttl_seconds: int = 600
    bcrypt_cost: int = DEFAULT_COST
    frontend_base_url: str = "http://localhost:3000"

    # ------------------------------------------------------------------
    # Self-service
    # ------------------------------------------------------------------

    def profile(self, user_id: str) -> PublicProfile:
        return PublicProfile.from_user(self._get(user_id))

    def update_profile(self, user_id: str, update: ProfileUpdate) -> User:
        """
        Change the caller's own contact details and identity documents.

        Identity documents may only be replaced by a seller whose review is
        still pending.

        Raises:
            ValidationFailure: Non-seller uploading identity documents
            InvalidTransition: Seller already verified or not under review
            EmailAlreadyRegistered: New email belongs to another user
        """
        user = self._get(user_id)

        changes: dict[str, Any] = {
            "first_name": update.first_name,
            "last_name": update.last_name,
            "phone": update.phone,
        }
        if update.email is not None:
            changes["email"] = normalize_email(update.email)
        changes = {name: value for name, value in changes.items() if value is not None}

        paths: list[str] = []
        if update.has_documents:
            if user.role is not Role.SELLER:
                raise ValidationFailure("Only sellers can upload verification documents")
            if user.is_active:
                raise InvalidTransition("Verified sellers cannot update verification documents")
            if not user.pending_verification:
                raise InvalidTransition(
                    "No pending verification found. Please contact support to resubmit documents"
                )
            paths = self._store_identity_documents(user_id, update, changes)

        changes["updated_at"] = self.clock()
        try:
            updated = self.users.update(user_id, changes)
        except (DependencyFailure, EmailAlreadyRegistered):
            self._discard(paths)
            raise
        if updated is None:
            self._discard(paths)
            raise RecordNotFound("User not found")

        logger.info("Updated profile for user %s", user_id)
        return updated

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_users(self, query: UserQuery, admin: Principal) -> Page[User]:
        self._require_admin(admin, "Only admins can list users")
        if query.page < 1:
            raise ValidationFailure("Page must be at least 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationFailure(f"Limit must be between 1 and {MAX_PAGE_SIZE}")
        return self.users.search(query)

    def get_user(self, user_id: str, admin: Principal) -> User:
        self._require_admin(admin, "Only admins can view users")
        return self._get(user_id)

    def create_user(self, account: NewAccount, admin: Principal) -> User:
        """
        Create an inactive account and email a set-password link.

        The account gets a hashed temporary password and a reset token; the
        holder chooses a password through the reset flow. A failed email
        is logged and the account kept.

        Raises:
            Forbidden: Caller is not an admin
            EmailAlreadyRegistered: Email belongs to a committed user
        """
        self._require_admin(admin, "Only admins can create users")
        email = normalize_email(account.email)
        if self.users.get_by_email(email) is not None:
            raise EmailAlreadyRegistered(email)

        is_seller = account.role is Role.SELLER
        now = self.clock()
        reset_token = str(uuid.uuid4())
        password = account.password or secrets.token_urlsafe(16)
        user = User(
            id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_secret(password, self.bcrypt_cost),
            first_name=account.first_name,
            last_name=account.last_name,
            phone=account.phone,
            role=account.role,
            is_active=False,
            pending_verification=False,
            surname=account.surname if is_seller else None,
            other_names=account.other_names if is_seller else None,
            nationality=account.nationality if is_seller else None,
            date_of_birth=account.date_of_birth if is_seller else None,
            national_id_number=account.national_id_number if is_seller else None,
            reset_token=reset_token,
            reset_expires_at=now + timedelta(seconds=self.reset_ttl_seconds),
            created_at=now,
            updated_at=now,
        )
        created = self.users.insert(user)

        subject, html = notifications.account_created_email(
            self.frontend_base_url,
            reset_token,
            account.first_name,
            account.last_name,
            max(1, self.reset_ttl_seconds // 60),
        )
        try:
            self.email_sender.send(email, subject, html)
        except DependencyFailure:
            logger.warning("Account created for %s but the set-password email failed", email)

        logger.info("Admin %s created user %s", admin.user_id, created.id)
        return created

    def update_user(self, user_id: str, patch: AccountPatch, admin: Principal) -> User:
        self._require_admin(admin, "Only admins can update users")
        self._get(user_id)

        changes: dict[str, Any] = {
            "first_name": patch.first_name,
            "last_name": patch.last_name,
            "phone": patch.phone,
            "role": patch.role,
            "is_active": patch.is_active,
        }
        if patch.email is not None:
            changes["email"] = normalize_email(patch.email)
        changes = {name: value for name, value in changes.items() if value is not None}
        changes["updated_at"] = self.clock()

        updated = self.users.update(user_id, changes)
        if updated is None:
            raise RecordNotFound("User not found")
        logger.info("Admin %s updated user %s", admin.user_id, user_id)
        return updated

    def approve_seller(self, user_id: str, admin: Principal) -> User:
        """
        Activate a seller whose identity documents were reviewed.

        Raises:
            InvalidTransition: User is not a seller awaiting review
        """
        self._require_admin(admin, "Only admins can approve sellers")
        user = self._get(user_id)
        if user.role is not Role.SELLER or not user.pending_verification:
            raise InvalidTransition("User is not a seller awaiting verification")

        updated = self.users.update(
            user_id,
            {"is_active": True, "pending_verification": False, "updated_at": self.clock()},
        )
        if updated is None:
            raise RecordNotFound("User not found")
        logger.info("Admin %s approved seller %s", admin.user_id, user_id)
        return updated

    def delete_user(self, user_id: str, admin: Principal) -> None:
        self._require_admin(admin, "Only admins can delete users")
        if not self.users.soft_delete(user_id, self.clock()):
            raise RecordNotFound("User not found")
        logger.info("Admin %s soft deleted user %s", admin.user_id, user_id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _get(self, user_id: str) -> User:
        user = self.users.get_by_id(user_id)
        if user is None:
            raise RecordNotFound("User not found")
        return user

    def _require_admin(self, principal: Principal, message: str) -> None:
        caller = self.users.get_by_id(principal.user_id)
        if caller is None or caller.role is not Role.ADMIN:
            raise Forbidden(message)

    def _store_identity_documents(
        self, user_id: str, update: ProfileUpdate, changes: dict[str, Any]
    ) -> list[str]:
        documents: tuple[tuple[str, str, Upload | None], ...] = (
            ("selfie", "selfie_image_url", update.selfie_image),
            ("id-card-front", "id_front_image_url", update.id_front_image),
            ("id-card-back", "id_back_image_url", update.id_back_image),
        )
        paths: list[str] = []
        for kind, column, upload in documents:
            if upload is None:
                continue
            path = f"documents/{kind}/{user_id}/{uuid.uuid4()}.jpg"
            try:
                changes[column] = self.blobs.upload(path, upload.content, upload.content_type)
            except DependencyFailure:
                logger.error("Identity document upload failed for user %s", user_id)
                self._discard(paths)
                raise DependencyFailure("Failed to upload images") from None
            paths.append(path)
        return paths

    def _discard(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self.blobs.remove(paths)
        except DependencyFailure:
            logger.warning("Could not remove %d uploaded document(s)", len(paths))
