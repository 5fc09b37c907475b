"""Deposit outcome models."""

from dataclasses import dataclass
from typing import ClassVar, Generic, List, Optional, TypeVar, Union

from pydantic import BaseModel

import messages
from models.records import LocalRecord

T = TypeVar("T")


class DepositError(BaseModel):
    """
    A single failure entry reported by a deposit step.

    Attributes:
        message_key (str): Localizable key identifying the failed operation.
        param (Optional[str]): Diagnostic detail substituted into the message.
    """

    message_key: str
    param: Optional[str] = None


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying the step's value."""

    value: T
    ok: ClassVar[bool] = True


@dataclass(frozen=True)
class Err:
    """
    Failed outcome carrying an ordered, non-empty list of errors.

    Attributes:
        errors (List[DepositError]): The error entries, in the order they occurred.
    """

    errors: List[DepositError]
    ok: ClassVar[bool] = False

    def __post_init__(self) -> None:
        if not self.errors:
            raise ValueError("An error result needs at least one error entry")

    @classmethod
    def of(cls, message_key: str, param: Optional[str] = None) -> "Err":
        """
        Creates a result holding a single error entry.
        """
        return cls(errors=[DepositError(message_key=message_key, param=param)])

    @property
    def message_keys(self) -> List[str]:
        return [error.message_key for error in self.errors]


Result = Union[Ok[T], Err]


class PersistedResult(BaseModel):
    """
    Outcome of a record deposit saved to the local results CSV.

    Attributes:
        local_id (Optional[str]): The local record ID.
        tenant_id (Optional[str]): The tenant owning the record.
        remote_id (Optional[str]): The Zenodo record ID, if any.
        doi (Optional[str]): The DOI of the record.
        status (Optional[str]): The deposit status after the run.
        link (Optional[str]): Link to the record on Zenodo.
        error_type (Optional[str]): Message keys of the errors, joined by ";".
        error_message (Optional[str]): Rendered error messages, joined by ";".
    """

    local_id: Optional[str] = None
    tenant_id: Optional[str] = None
    remote_id: Optional[str] = None
    doi: Optional[str] = None
    status: Optional[str] = None
    link: Optional[str] = None
    error_type: Optional[str] = None
    error_message: Optional[str] = None

    def update(self, record: LocalRecord, base_url: Optional[str] = None) -> None:
        """
        Updates the model with values from a local record.
        """
        self.local_id = record.local_id
        self.tenant_id = record.tenant_id
        self.remote_id = record.remote_id
        self.doi = record.doi
        self.status = record.deposit_status
        if base_url and record.remote_id:
            self.link = f"{base_url.replace('/api/', '/')}records/{record.remote_id}"

    def set_errors(self, errors: List[DepositError]) -> None:
        self.error_type = ";".join(error.message_key for error in errors)
        self.error_message = ";".join(
            messages.render(error.message_key, error.param) for error in errors
        )
