"""The in-process representation of an authenticated account."""
from __future__ import annotations

from enum import Enum
from typing import Optional

from safety_beacon.domain import AccountPointer, AccountRecord
from safety_beacon.errors import RelationshipConflictError


class Role(str, Enum):
    """Side of a caretaker/patient link."""
    CARETAKER = "caretaker"
    PATIENT = "patient"


class Session:
    """An authenticated account and its (typed) caretaker/patient references.

    A session is a caretaker, a patient, or unlinked; never both. The naming of
    the derived flags follows the backend schema: an account that has no
    `patient` reference is a patient (or unlinked), and an account that has no
    `caretaker` reference is a caretaker (or unlinked).
    """

    def __init__(self, remote_handle: AccountRecord) -> None:
        if remote_handle.caretaker is not None and remote_handle.patient is not None:
            raise RelationshipConflictError(
                f"Account {remote_handle.object_id} is linked as both caretaker and patient"
            )
        self._handle = remote_handle

    @property
    def remote_handle(self) -> AccountRecord:
        return self._handle

    @property
    def identifier(self) -> str:
        return self._handle.object_id

    @property
    def username(self) -> Optional[str]:
        return self._handle.username

    @property
    def email(self) -> Optional[str]:
        return self._handle.email

    @property
    def caretaker_ref(self) -> Optional[AccountPointer]:
        """Present iff this session is a patient linked to a caretaker."""
        return self._handle.caretaker

    @property
    def patient_ref(self) -> Optional[AccountPointer]:
        """Present iff this session is a caretaker linked to a patient."""
        return self._handle.patient

    @property
    def is_caretaker(self) -> bool:
        return self.caretaker_ref is None

    @property
    def is_patient(self) -> bool:
        return self.patient_ref is None

    @property
    def requires_setup(self) -> bool:
        """True when the account still needs a caretaker/patient link."""
        return self.is_caretaker and self.is_patient

    def ref_for(self, role: Role) -> Optional[AccountPointer]:
        """Return the reference to the linked account playing `role`."""
        return self.caretaker_ref if role is Role.CARETAKER else self.patient_ref

    def pointer(self) -> AccountPointer:
        """Raw backend pointer for this account, safe to use in equality filters."""
        return self._handle.pointer()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Session):
            return NotImplemented
        return self.identifier == other.identifier

    def __hash__(self) -> int:
        return hash(self.identifier)

    def __repr__(self) -> str:
        return f"Session(identifier={self.identifier!r}, requires_setup={self.requires_setup})"
