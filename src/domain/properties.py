"""
Property lifecycle domain service - verification and ownership transfer.

Property State Machine
======================

    submit --> PENDING --approve--> VERIFIED
                 ^  \\
                 |   `--reject--> REJECTED
                 |                   |
                 `------- edit ------'

Transfer Sub-State Machine (only while status = VERIFIED)
=========================================================

    (none | VERIFIED | REJECTED) --request--> PENDING
    PENDING --approve--> VERIFIED   (owner reassigned)
    PENDING --reject---> REJECTED   (owner unchanged)

Every transition is written with a guarded single-statement update, so a
concurrent transition makes the write miss (InvalidTransition) rather
than overwrite.
"""

import logging
import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from .exceptions import (
    DependencyFailure,
    Forbidden,
    InvalidTransition,
    RecordNotFound,
    TransferAlreadyPending,
    ValidationFailure,
)
from .models import (
    Adjudication,
    AdjudicationAction,
    Document,
    Page,
    Principal,
    Property,
    PropertyDraft,
    PropertyPatch,
    PropertyQuery,
    PropertyStats,
    PropertyStatus,
    Role,
    TransferOutcome,
    TransferRequest,
    TransferStatus,
    Upload,
    User,
    normalize_email,
)
from .ownership import OwnershipResolver
from .ports import BlobStore, Clock, PropertyRepository, UpdateGuard, UserRepository, system_clock

logger = logging.getLogger(__name__)

QUICK_APPROVAL_NOTE = "Quick approval"
QUICK_REJECTION_NOTE = "Quick rejection"
MAX_PAGE_SIZE = 100

# Patch fields copied verbatim when supplied
_PATCHABLE_FIELDS = (
    "title",
    "type",
    "price",
    "description",
    "features",
    "address",
    "coordinates",
    "sector",
    "block",
    "bedrooms",
    "bathrooms",
    "owner_name",
    "owner_contact",
    "owner_email",
)


@dataclass
class PropertyService:
    """
    Domain service for the property lifecycle.

    Sellers submit, edit, delete and request transfers of their own
    properties; admins adjudicate submissions and transfers.
    """

    properties: PropertyRepository
    users: UserRepository
    blobs: BlobStore
    resolver: OwnershipResolver
    clock: Clock = system_clock

    # ------------------------------------------------------------------
    # Seller operations
    # ------------------------------------------------------------------

    def submit(self, draft: PropertyDraft, seller: Principal) -> Property:
        """
        Create a property in PENDING status.

        Documents are uploaded before the insert and removed again if the
        insert fails.
        """
        self._require_role(seller, Role.SELLER, "Only sellers can create properties")

        documents, paths = self._store_documents(
            (
                ("gov-id", "governmentId.jpg", draft.government_id),
                ("survey", "surveyDocuments.jpg", draft.survey_documents),
            )
        )
        now = self.clock()
        record = Property(
            id=str(uuid.uuid4()),
            title=draft.title,
            type=draft.type,
            price=draft.price,
            size=f"{draft.size_number} {draft.size_unit.value}",
            address=draft.address,
            coordinates=draft.coordinates,
            owner_id=seller.user_id,
            owner_name=draft.owner_name,
            owner_contact=draft.owner_contact,
            owner_email=draft.owner_email,
            status=PropertyStatus.PENDING,
            submitted_date=now,
            last_updated=now,
            description=draft.description,
            features=draft.features,
            sector=draft.sector,
            block=draft.block,
            bedrooms=draft.bedrooms,
            bathrooms=draft.bathrooms,
            documents=tuple(documents),
        )
        try:
            created = self.properties.insert(record)
        except DependencyFailure:
            logger.error("Creating property for seller %s failed", seller.user_id)
            self._discard(paths)
            raise DependencyFailure("Failed to create property") from None

        logger.info("Created property %s by seller %s", created.id, seller.user_id)
        return created

    def update(self, property_id: str, patch: PropertyPatch, seller: Principal) -> Property:
        """
        Apply a partial edit and send the property back to PENDING.

        Omitted fields keep their value; new documents are appended.

        Raises:
            Forbidden: Caller is not the owning seller
            InvalidTransition: Property is verified
        """
        self._require_role(seller, Role.SELLER, "Only sellers can update properties")
        current = self.get(property_id)
        self._require_owner(current, seller, "Not authorized to update this property")
        if current.status is PropertyStatus.VERIFIED:
            raise InvalidTransition("Verified properties require re-verification")

        changes: dict[str, Any] = {
            name: getattr(patch, name) for name in _PATCHABLE_FIELDS if getattr(patch, name) is not None
        }
        if patch.size_number and patch.size_unit:
            changes["size"] = f"{patch.size_number} {patch.size_unit.value}"
        changes["status"] = PropertyStatus.PENDING
        changes["last_updated"] = self.clock()

        documents, paths = self._store_documents(
            (
                ("gov-id", "governmentId.jpg", patch.government_id),
                ("survey", "surveyDocuments.jpg", patch.survey_documents),
            )
        )
        updated = self._guarded_update(
            property_id, changes, UpdateGuard.EDITABLE, paths, append_documents=documents
        )
        if updated is None:
            raise InvalidTransition("Verified properties require re-verification")

        logger.info("Updated property %s by seller %s", property_id, seller.user_id)
        return updated

    def delete(self, property_id: str, seller: Principal) -> None:
        """Soft-delete a property owned by the caller."""
        self._require_role(seller, Role.SELLER, "Only sellers can delete properties")
        current = self.get(property_id)
        self._require_owner(current, seller, "Not authorized to delete this property")
        if not self.properties.soft_delete(property_id, self.clock()):
            raise RecordNotFound("Property not found")
        logger.info("Soft deleted property %s by seller %s", property_id, seller.user_id)

    def request_transfer(
        self, property_id: str, request: TransferRequest, seller: Principal
    ) -> Property:
        """
        Open an ownership transfer on a verified property.

        Overwrites the fields of any previous, adjudicated transfer.

        Raises:
            Forbidden: Caller is not the owning seller
            InvalidTransition: Property is not verified
            TransferAlreadyPending: A transfer awaits adjudication
        """
        self._require_role(seller, Role.SELLER, "Only sellers can initiate transfers")
        if not request.new_owner_email or not request.new_owner_email.strip():
            raise ValidationFailure("New owner email is required")

        current = self.get(property_id)
        self._require_owner(current, seller, "Not authorized to transfer this property")
        if current.status is not PropertyStatus.VERIFIED:
            raise InvalidTransition("Only verified properties can be transferred")
        if current.transfer_status is TransferStatus.PENDING:
            raise TransferAlreadyPending("A transfer is already pending for this property")

        documents, paths = self._store_documents(
            (("transfer", "transferDocuments.jpg", request.transfer_documents),)
        )
        now = self.clock()
        changes: dict[str, Any] = {
            "transfer_status": TransferStatus.PENDING,
            "transfer_request_date": now,
            "new_owner_name": request.new_owner_name,
            "new_owner_contact": request.new_owner_contact,
            "new_owner_email": normalize_email(request.new_owner_email),
            "transfer_reason": request.transfer_reason,
            "transfer_documents": tuple(documents),
            "transfer_verified_date": None,
            "transfer_verified_by": None,
            "transfer_rejected_date": None,
            "transfer_rejected_by": None,
            "transfer_rejection_reason": None,
            "transfer_notes": None,
            "last_updated": now,
        }
        updated = self._guarded_update(property_id, changes, UpdateGuard.TRANSFERABLE, paths)
        if updated is None:
            raise TransferAlreadyPending("Property is no longer open for transfer")

        logger.info("Requested transfer for property %s by seller %s", property_id, seller.user_id)
        return updated

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def adjudicate(self, property_id: str, decision: Adjudication, admin: Principal) -> Property:
        """
        Approve or reject a pending property.

        Raises:
            ValidationFailure: Notes missing, or reason missing on reject
            Forbidden: Caller is not an admin
            InvalidTransition: Property is not pending
        """
        self._validate_decision(decision)
        self._require_role(admin, Role.ADMIN, "Only admins can verify properties")
        return self._adjudicate(property_id, decision, admin)

    def quick_approve(self, property_id: str, admin: Principal) -> Property:
        """Approve with a fixed note."""
        self._require_role(admin, Role.ADMIN, "Only admins can approve properties")
        decision = Adjudication(AdjudicationAction.APPROVE, QUICK_APPROVAL_NOTE)
        return self._adjudicate(property_id, decision, admin)

    def quick_reject(self, property_id: str, admin: Principal) -> Property:
        """Reject with a fixed note and reason."""
        self._require_role(admin, Role.ADMIN, "Only admins can reject properties")
        decision = Adjudication(AdjudicationAction.REJECT, QUICK_REJECTION_NOTE, QUICK_REJECTION_NOTE)
        return self._adjudicate(property_id, decision, admin)

    def adjudicate_transfer(
        self, property_id: str, decision: Adjudication, admin: Principal
    ) -> TransferOutcome:
        """
        Approve or reject a pending transfer.

        Approval is a two-step pipeline: resolve (or provision) the new
        owner's account, then reassign ownership in one guarded update.

        Raises:
            ValidationFailure: Notes missing, or reason missing on reject
            Forbidden: Caller is not an admin
            InvalidTransition: No transfer is pending
        """
        self._validate_decision(decision)
        self._require_role(admin, Role.ADMIN, "Only admins can verify transfers")
        current = self.get(property_id)
        if current.transfer_status is not TransferStatus.PENDING:
            raise InvalidTransition("Only pending transfers can be verified")

        now = self.clock()
        resolution = None
        if decision.action is AdjudicationAction.APPROVE:
            resolution = self.resolver.resolve(
                current.new_owner_email or "", current.new_owner_name, current.new_owner_contact
            )
            changes: dict[str, Any] = {
                "transfer_status": TransferStatus.VERIFIED,
                "transfer_verified_date": now,
                "transfer_verified_by": admin.user_id,
                "transfer_notes": decision.notes,
                "previous_owner_id": current.owner_id,
                "owner_id": resolution.user_id,
                "owner_name": current.new_owner_name or current.owner_name,
                "owner_contact": current.new_owner_contact or current.owner_contact,
                "owner_email": current.new_owner_email or current.owner_email,
                "last_updated": now,
            }
        else:
            changes = {
                "transfer_status": TransferStatus.REJECTED,
                "transfer_rejected_date": now,
                "transfer_rejected_by": admin.user_id,
                "transfer_rejection_reason": decision.rejection_reason,
                "transfer_notes": decision.notes,
                "last_updated": now,
            }

        updated = self.properties.update(property_id, changes, UpdateGuard.TRANSFER_PENDING)
        if updated is None:
            # The provisioned account may belong to a concurrent winning approval
            if resolution is not None and resolution.degraded:
                logger.warning(
                    "Transfer of property %s was decided concurrently; provisioned account %s may own nothing",
                    property_id,
                    resolution.user_id,
                )
            raise InvalidTransition("Only pending transfers can be verified")

        if resolution is not None and resolution.degraded:
            logger.warning(
                "Property %s transferred to provisioned account %s without credentials",
                property_id,
                resolution.user_id,
            )
        logger.info(
            "%s transfer for property %s by admin %s", decision.action.value, property_id, admin.user_id
        )
        return TransferOutcome(property=updated, resolution=resolution)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def get(self, property_id: str) -> Property:
        record = self.properties.get(property_id)
        if record is None:
            raise RecordNotFound("Property not found")
        return record

    def documents(self, property_id: str) -> tuple[Document, ...]:
        return self.get(property_id).documents

    def search(self, query: PropertyQuery) -> Page[Property]:
        self._validate_page(query)
        return self.properties.search(query)

    def list_for_verification(self, query: PropertyQuery) -> Page[Property]:
        """List properties in one verification status (status required)."""
        if query.status is None:
            raise ValidationFailure("Invalid status")
        return self.search(query)

    def stats(self) -> PropertyStats:
        return self.properties.stats()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _adjudicate(self, property_id: str, decision: Adjudication, admin: Principal) -> Property:
        current = self.get(property_id)
        if current.status is not PropertyStatus.PENDING:
            raise InvalidTransition("Only pending properties can be verified")

        now = self.clock()
        if decision.action is AdjudicationAction.APPROVE:
            changes: dict[str, Any] = {
                "status": PropertyStatus.VERIFIED,
                "verification_notes": decision.notes,
                "verified_date": now,
                "verified_by": admin.user_id,
                "last_updated": now,
            }
        else:
            changes = {
                "status": PropertyStatus.REJECTED,
                "verification_notes": decision.notes,
                "rejected_date": now,
                "rejected_by": admin.user_id,
                "rejection_reason": decision.rejection_reason,
                "last_updated": now,
            }

        updated = self.properties.update(property_id, changes, UpdateGuard.PENDING_REVIEW)
        if updated is None:
            raise InvalidTransition("Only pending properties can be verified")
        logger.info("%s property %s by admin %s", decision.action.value, property_id, admin.user_id)
        return updated

    def _require_role(self, principal: Principal, role: Role, message: str) -> User:
        """Re-read the caller's role from the store; tokens may be stale."""
        user = self.users.get_by_id(principal.user_id)
        if user is None or user.role is not role:
            raise Forbidden(message)
        return user

    def _require_owner(self, record: Property, principal: Principal, message: str) -> None:
        if record.owner_id != principal.user_id:
            raise Forbidden(message)

    def _validate_decision(self, decision: Adjudication) -> None:
        if not decision.notes or not decision.notes.strip():
            raise ValidationFailure("Verification notes are required")
        if decision.action is AdjudicationAction.REJECT and not (
            decision.rejection_reason and decision.rejection_reason.strip()
        ):
            raise ValidationFailure("Rejection reason is required")

    def _validate_page(self, query: PropertyQuery) -> None:
        if query.page < 1:
            raise ValidationFailure("Page must be at least 1")
        if not 1 <= query.limit <= MAX_PAGE_SIZE:
            raise ValidationFailure(f"Limit must be between 1 and {MAX_PAGE_SIZE}")

    def _store_documents(
        self, uploads: Sequence[tuple[str, str, Upload | None]]
    ) -> tuple[list[Document], list[str]]:
        """Upload supplied documents; on failure remove those already stored."""
        documents: list[Document] = []
        paths: list[str] = []
        for folder, name, upload in uploads:
            if upload is None:
                continue
            path = f"documents/{folder}/{uuid.uuid4()}.jpg"
            try:
                url = self.blobs.upload(path, upload.content, upload.content_type)
            except DependencyFailure:
                logger.error("Document upload to %s failed", path)
                self._discard(paths)
                raise DependencyFailure("Failed to upload documents") from None
            documents.append(Document(name=name, url=url))
            paths.append(path)
        return documents, paths

    def _guarded_update(
        self,
        property_id: str,
        changes: dict[str, Any],
        guard: UpdateGuard,
        uploaded_paths: list[str],
        append_documents: Sequence[Document] = (),
    ) -> Property | None:
        """Run a guarded update, removing this call's uploads if it does not apply."""
        try:
            updated = self.properties.update(property_id, changes, guard, append_documents)
        except DependencyFailure:
            logger.error("Updating property %s failed", property_id)
            self._discard(uploaded_paths)
            raise DependencyFailure("Failed to update property") from None
        if updated is None:
            self._discard(uploaded_paths)
        return updated

    def _discard(self, paths: list[str]) -> None:
        if not paths:
            return
        try:
            self.blobs.remove(paths)
        except DependencyFailure:
            logger.warning("Could not remove %d uploaded document(s)", len(paths))
