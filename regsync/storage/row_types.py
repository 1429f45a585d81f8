"""Rows written by the three pipelines."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class FormRow:
    id: int
    form_name: str
    scheduled_date: Optional[str]
    status: str
    webpage_id: str
    pre_reg: bool
    # Diagnostics only; not a column.
    ambiguous: bool = False

    def as_params(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "form_name": self.form_name,
            "scheduled_date": self.scheduled_date,
            "status": self.status,
            "webpage_id": self.webpage_id,
            "pre_reg": self.pre_reg,
        }


@dataclass(frozen=True)
class MembershipRow:
    member_number: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    level_id: Optional[int] = None
    fee: Optional[int] = None
    status: Optional[str] = None
    expiration_date: Optional[str] = None

    def as_params(self) -> Dict[str, Any]:
        return {
            "member_number": self.member_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "level_id": self.level_id,
            "fee": self.fee,
            "status": self.status,
            "expiration_date": self.expiration_date,
        }


@dataclass(frozen=True)
class RegistrantRow:
    form_id: str
    ext_id: int
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None

    def as_params(self) -> Dict[str, Any]:
        return {
            "form_id": self.form_id,
            "ext_id": self.ext_id,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "email": self.email,
            "status": self.status,
        }
