"""
Onboarding domain service - staged registration with compensation.

Registration is two-phase: data is staged in the ephemeral store under
the email and a one-time token, then committed to the durable store when
the token is presented. Every side effect written by a failing call is
undone before the error surfaces.

Staging Lifecycle
=================

    register ---> STAGED --verify--> COMMITTED (user row, cache entries deleted)
                    |  \\
                    |   `--resend--> STAGED (new token/OTP, fresh expiry)
                    |
                    `--expiry passes--> EXPIRED (purged on next read)

Cache keys:
- verify:<email>  -> StagedRegistration JSON
- token:<token>   -> email

Expiry is decided by the absolute `expires_at` stored in the payload and
checked at read time; the cache TTL only bounds key lifetime.
"""

import logging
import secrets
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import timedelta

from . import notifications
from .exceptions import (
    AccountInactive,
    DependencyFailure,
    EmailAlreadyRegistered,
    InvalidCredentials,
    RecordNotFound,
    RegistrationExpired,
    RegistrationPending,
    TokenExpired,
    ValidationFailure,
)
from .models import (
    AuthTokens,
    PublicProfile,
    RegistrationInput,
    Role,
    StagedRegistration,
    Upload,
    User,
    VerifiedAccount,
    normalize_email,
)
from .passwords import DEFAULT_COST, burn_comparison, hash_secret, verify_secret
from .ports import BlobStore, Clock, EmailSender, StagingStore, TokenIssuer, UserRepository, system_clock

logger = logging.getLogger(__name__)

REGISTRATION_PREFIX = "verify:"
TOKEN_PREFIX = "token:"

# Admins are seeded or created by another admin, never self-registered
SELF_REGISTRATION_ROLES = frozenset({Role.BUYER, Role.SELLER})


def registration_key(email: str) -> str:
    return f"{REGISTRATION_PREFIX}{email}"


def token_key(token: str) -> str:
    return f"{TOKEN_PREFIX}{token}"


@dataclass
class OnboardingService:
    """
    Domain service for identity onboarding.

    Orchestrates registration staging, email verification and commit,
    verification resend, login, token refresh and password reset.
    """

    users: UserRepository
    staging: StagingStore
    blobs: BlobStore
    email_sender: EmailSender
    tokens: TokenIssuer
    clock: Clock = system_clock
    staging_ttl_seconds: int = 600
    reset_ttl_seconds: int = 600
    bcrypt_cost: int = DEFAULT_COST
    min_password_length: int = 8
    frontend_base_url: str = "http://localhost:3000"

    @property
    def _ttl_minutes(self) -> int:
        return max(1, self.staging_ttl_seconds // 60)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def register(self, data: RegistrationInput) -> str:
        """
        Stage a new registration and email the verification link.

        Args:
            data: Registration input; seller identity documents optional

        Returns:
            Normalized email address

        Raises:
            ValidationFailure: Role is not open to self-registration
            EmailAlreadyRegistered: Email belongs to a committed user
            RegistrationPending: A live staged registration holds the email
            DependencyFailure: Upload, cache or email step failed (rolled back)
        """
        if data.role not in SELF_REGISTRATION_ROLES:
            raise ValidationFailure("Role must be buyer or seller")
        email = normalize_email(data.email)

        if self._find_user(email) is not None:
            raise EmailAlreadyRegistered(email)

        token = self._generate_token()
        otp = self._generate_otp()
        now = self.clock()
        is_seller = data.role is Role.SELLER

        staged = StagedRegistration(
            email=email,
            verification_token=token,
            hashed_otp=hash_secret(otp, self.bcrypt_cost),
            hashed_password=hash_secret(data.password, self.bcrypt_cost),
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            role=data.role,
            expires_at=now + timedelta(seconds=self.staging_ttl_seconds),
            surname=data.surname if is_seller else None,
            other_names=data.other_names if is_seller else None,
            nationality=data.nationality if is_seller else None,
            date_of_birth=data.date_of_birth if is_seller else None,
            national_id_number=data.national_id_number if is_seller else None,
        )

        if is_seller:
            self._upload_identity_documents(staged, data)

        self._stage(staged)

        subject, html = notifications.verification_email(
            self.frontend_base_url, token, otp, data.first_name, data.last_name, self._ttl_minutes
        )
        try:
            self.email_sender.send(email, subject, html)
        except DependencyFailure:
            logger.error("Verification email to %s failed; rolling back staged registration", email)
            self._drop_cache_entries(email, token)
            self._discard_documents(staged.document_paths)
            raise DependencyFailure("Failed to send verification email") from None

        logger.info("Staged registration for %s (role=%s)", email, data.role.value)
        return email

    def verify_email(self, token: str) -> VerifiedAccount:
        """
        Commit a staged registration identified by its one-time token.

        Raises:
            ValidationFailure: Blank token
            RecordNotFound: Unknown, rotated or already-consumed token
            RegistrationExpired: Staged data passed its expiry (purged)
            EmailAlreadyRegistered: Email was committed meanwhile (cache entries dropped)
            DependencyFailure: Durable insert failed (purged)
        """
        if not token or not token.strip():
            raise ValidationFailure("Verification token is required")
        token = token.strip()

        email = self._cache_get(token_key(token))
        if email is None:
            raise RecordNotFound("No registration found for this token")

        staged = self._load_staged(email)
        if staged is None or staged.verification_token != token:
            self._forget(token_key(token))
            raise RecordNotFound("No registration found for this token")

        if staged.is_expired(self.clock()):
            logger.info("Staged registration for %s expired before verification", email)
            self._purge(staged)
            raise RegistrationExpired("Verification link has expired. Please register again")

        existing = self._find_user(email)
        if existing is not None:
            logger.warning("Email %s was committed while staged; discarding staged data", email)
            self._release(staged, existing)
            raise EmailAlreadyRegistered(email)

        user = self._user_from_staged(staged)
        try:
            user = self.users.insert(user)
        except EmailAlreadyRegistered:
            self._release(staged, self._find_user(email))
            raise
        except DependencyFailure:
            logger.error("Committing user for %s failed; discarding staged data", email)
            self._purge(staged)
            raise DependencyFailure("Failed to complete registration") from None

        self._drop_cache_entries(email, token)
        logger.info("Email verified and user %s created for %s", user.id, email)
        return VerifiedAccount(
            profile=PublicProfile.from_user(user),
            tokens=self.tokens.issue(user.id, user.email, user.role),
        )

    def resend_verification(self, email: str) -> str:
        """
        Rotate token and OTP of a live staged registration and resend.

        Raises:
            RecordNotFound: No live staged registration (including expired)
            DependencyFailure: Cache or email step failed
        """
        email = normalize_email(email)
        staged = self._load_staged(email)
        if staged is None:
            raise RecordNotFound("No pending verification found for this email")
        if staged.is_expired(self.clock()):
            self._purge(staged)
            raise RecordNotFound("No pending verification found for this email")

        old_token = staged.verification_token
        otp = self._generate_otp()
        staged.verification_token = self._generate_token()
        staged.hashed_otp = hash_secret(otp, self.bcrypt_cost)
        staged.expires_at = self.clock() + timedelta(seconds=self.staging_ttl_seconds)

        try:
            self.staging.set(registration_key(email), staged.to_json(), self.staging_ttl_seconds)
            self.staging.set(token_key(staged.verification_token), email, self.staging_ttl_seconds)
        except DependencyFailure:
            logger.error("Rotating staged registration for %s failed", email)
            raise DependencyFailure("Failed to resend verification email") from None
        self._forget(token_key(old_token))

        subject, html = notifications.resent_verification_email(
            self.frontend_base_url,
            staged.verification_token,
            otp,
            staged.first_name,
            staged.last_name,
            self._ttl_minutes,
        )
        try:
            self.email_sender.send(email, subject, html)
        except DependencyFailure:
            logger.error("Resent verification email to %s failed", email)
            raise DependencyFailure("Failed to resend verification email") from None

        logger.info("Rotated verification token for %s", email)
        return email

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    def login(self, email: str, password: str) -> VerifiedAccount:
        """
        Authenticate a committed user.

        Raises:
            RecordNotFound: No user with this email
            InvalidCredentials: Password mismatch or no password set
            AccountInactive: Account not active (e.g. seller awaiting review)
        """
        email = normalize_email(email)
        user = self._find_user(email)
        if user is None:
            burn_comparison(password)
            raise RecordNotFound("User not found")

        if not verify_secret(password, user.password_hash):
            raise InvalidCredentials("Invalid credentials")
        if not user.is_active:
            raise AccountInactive("Account is not active. Please contact support.")

        tokens = self.tokens.issue(user.id, user.email, user.role)
        now = self.clock()
        try:
            self.users.update(user.id, {"last_login_at": now, "updated_at": now})
        except DependencyFailure:
            logger.warning("Could not record last login for user %s", user.id)
        return VerifiedAccount(profile=PublicProfile.from_user(user), tokens=tokens)

    def refresh(self, refresh_token: str) -> AuthTokens:
        """Mint a new access token for a valid refresh token."""
        if not refresh_token:
            raise InvalidCredentials("Refresh token is required")
        claims = self.tokens.decode_refresh(refresh_token)
        user = self.users.get_by_id(claims.subject)
        if user is None or not user.is_active:
            raise InvalidCredentials("User not found or inactive")
        return AuthTokens(
            access_token=self.tokens.issue_access(user.id, user.email, user.role),
            refresh_token=refresh_token,
        )

    def logout(self, refresh_token: str) -> None:
        """
        Stateless logout; the client discards its tokens.

        Server-side revocation is not implemented.
        """
        if not refresh_token:
            raise InvalidCredentials("Refresh token is required")
        logger.info("Logout with refresh token ending %s", refresh_token[-6:])

    # ------------------------------------------------------------------
    # Password reset
    # ------------------------------------------------------------------

    def forgot_password(self, email: str) -> str:
        """
        Set a single-use reset token on the user row and email the link.

        Raises:
            RecordNotFound: No user with this email
            DependencyFailure: Store or email step failed (safe to retry)
        """
        email = normalize_email(email)
        user = self._find_user(email)
        if user is None:
            raise RecordNotFound("User not found")

        reset_token = self._generate_token()
        now = self.clock()
        self.users.update(
            user.id,
            {
                "reset_token": reset_token,
                "reset_expires_at": now + timedelta(seconds=self.reset_ttl_seconds),
                "updated_at": now,
            },
        )

        subject, html = notifications.password_reset_email(
            self.frontend_base_url, reset_token, user.first_name, max(1, self.reset_ttl_seconds // 60)
        )
        try:
            self.email_sender.send(email, subject, html)
        except DependencyFailure:
            logger.error("Password reset email to %s failed", email)
            raise DependencyFailure("Failed to send password reset email") from None

        logger.info("Issued password reset token for user %s", user.id)
        return email

    def reset_password(self, token: str, new_password: str) -> None:
        """
        Replace the password of the user holding `token`.

        Raises:
            ValidationFailure: Missing input or password too short
            RecordNotFound: Unknown or already used token
            TokenExpired: Token passed its expiry (token cleared)
        """
        if not token or not new_password:
            raise ValidationFailure("Reset token and new password are required")

        user = self.users.get_by_reset_token(token)
        if user is None:
            raise RecordNotFound("Invalid or expired reset token")

        now = self.clock()
        if user.reset_expires_at is None or user.reset_expires_at <= now:
            self.users.update(user.id, {"reset_token": None, "reset_expires_at": None, "updated_at": now})
            raise TokenExpired("Reset token has expired")

        if len(new_password) < self.min_password_length:
            raise ValidationFailure(
                f"Password must be at least {self.min_password_length} characters long"
            )

        consumed = self.users.consume_reset_token(token, hash_secret(new_password, self.bcrypt_cost), now)
        if not consumed:
            raise RecordNotFound("Invalid or expired reset token")
        logger.info("Password reset for user %s", user.id)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find_user(self, email: str) -> User | None:
        return self.users.get_by_email(email)

    def _generate_token(self) -> str:
        return str(uuid.uuid4())

    def _generate_otp(self) -> str:
        """Six-digit OTP (100000-999999) from a cryptographic source."""
        return str(100000 + secrets.randbelow(900000))

    def _upload_identity_documents(self, staged: StagedRegistration, data: RegistrationInput) -> None:
        """Upload supplied identity documents, recording each path on `staged`."""
        documents: Iterable[tuple[str, str, Upload | None]] = (
            ("selfie", "selfie_image_url", data.selfie_image),
            ("id-card-front", "id_front_image_url", data.id_front_image),
            ("id-card-back", "id_back_image_url", data.id_back_image),
        )
        for kind, attribute, upload in documents:
            if upload is None:
                continue
            path = f"temp/{kind}/{staged.email}/{uuid.uuid4()}.jpg"
            try:
                url = self.blobs.upload(path, upload.content, upload.content_type)
            except DependencyFailure:
                logger.error("Identity document upload failed for %s", staged.email)
                self._discard_documents(staged.document_paths)
                raise DependencyFailure("Failed to upload image") from None
            staged.document_paths.append(path)
            setattr(staged, attribute, url)

    def _stage(self, staged: StagedRegistration) -> None:
        """
        Write the registration and token mapping.

        The registration key is claimed conditionally: a live registration
        for the same email is never overwritten, an expired one is purged
        and the claim retried once.
        """
        claimed = False
        try:
            claimed = self._claim_registration(staged)
            if not claimed:
                self._discard_documents(staged.document_paths)
                raise RegistrationPending(staged.email)
            self.staging.set(token_key(staged.verification_token), staged.email, self.staging_ttl_seconds)
        except DependencyFailure:
            logger.error("Staging registration for %s failed; rolling back", staged.email)
            if claimed:
                self._forget(registration_key(staged.email))
            self._forget(token_key(staged.verification_token))
            self._discard_documents(staged.document_paths)
            raise DependencyFailure("Failed to save registration data") from None

    def _claim_registration(self, staged: StagedRegistration) -> bool:
        """Claim the registration key; False while a live registration holds it."""
        key = registration_key(staged.email)
        payload = staged.to_json()
        if self.staging.claim(key, payload, self.staging_ttl_seconds):
            return True

        held = self._load_staged(staged.email)
        if held is not None and not held.is_expired(self.clock()):
            return False
        if held is not None:
            logger.info("Replacing expired staged registration for %s", staged.email)
            self._purge(held)
        return self.staging.claim(key, payload, self.staging_ttl_seconds)

    def _load_staged(self, email: str) -> StagedRegistration | None:
        raw = self._cache_get(registration_key(email))
        if raw is None:
            return None
        try:
            return StagedRegistration.from_json(raw)
        except (ValueError, KeyError, TypeError):
            logger.error("Discarding unreadable staged registration for %s", email)
            self._forget(registration_key(email))
            return None

    def _cache_get(self, key: str) -> str | None:
        return self.staging.get(key)

    def _user_from_staged(self, staged: StagedRegistration) -> User:
        is_seller = staged.role is Role.SELLER
        now = self.clock()
        return User(
            id=str(uuid.uuid4()),
            email=staged.email,
            password_hash=staged.hashed_password,
            first_name=staged.first_name,
            last_name=staged.last_name,
            phone=staged.phone,
            role=staged.role,
            is_active=not is_seller,
            pending_verification=is_seller,
            surname=staged.surname,
            other_names=staged.other_names,
            nationality=staged.nationality,
            date_of_birth=staged.date_of_birth,
            national_id_number=staged.national_id_number,
            selfie_image_url=staged.selfie_image_url,
            id_front_image_url=staged.id_front_image_url,
            id_back_image_url=staged.id_back_image_url,
            created_at=now,
            updated_at=now,
        )

    def _purge(self, staged: StagedRegistration) -> None:
        """Remove a staged registration, its token mapping and its documents."""
        self._drop_cache_entries(staged.email, staged.verification_token)
        self._discard_documents(staged.document_paths)

    def _release(self, staged: StagedRegistration, committed: User | None) -> None:
        """
        Drop a staged registration that lost to a committed user.

        Documents are kept when the committed user references them, which
        happens when a concurrent verify of the same link won the insert.
        """
        self._drop_cache_entries(staged.email, staged.verification_token)
        staged_urls = {staged.selfie_image_url, staged.id_front_image_url, staged.id_back_image_url} - {None}
        if committed is not None and staged_urls & {
            committed.selfie_image_url,
            committed.id_front_image_url,
            committed.id_back_image_url,
        }:
            logger.info("Keeping identity documents of %s referenced by user %s", staged.email, committed.id)
            return
        self._discard_documents(staged.document_paths)

    def _drop_cache_entries(self, email: str, token: str) -> None:
        self._forget(registration_key(email))
        self._forget(token_key(token))

    def _forget(self, key: str) -> None:
        """Best-effort cache delete; failures are logged, never raised."""
        try:
            self.staging.delete(key)
        except DependencyFailure:
            logger.warning("Could not delete staging key %s", key)

    def _discard_documents(self, paths: list[str]) -> None:
        """Best-effort blob cleanup; failures are logged, never raised."""
        if not paths:
            return
        try:
            self.blobs.remove(list(paths))
        except DependencyFailure:
            logger.warning("Could not remove %d uploaded document(s)", len(paths))
