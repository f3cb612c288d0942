from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.constants import DEFAULT_CURRENCY, PAYMENT_STATUSES
from app.studylinker.errors import ForbiddenError, NotFoundError
from app.studylinker.modules.contracts.models import Contract
from app.studylinker.modules.contracts.service import require_contract_party
from app.studylinker.modules.payments.models import Payment
from app.studylinker.modules.users.models import UserProfile
from app.studylinker.modules.users.service import require_caller, require_parent_caller
from app.studylinker.utils import utcnow

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def payment_to_dict(payment: Payment) -> dict[str, Any]:
    data = payment.to_dict()
    contract = payment.contract
    data["contract"] = {
        "id": contract.id,
        "subject": contract.subject,
        "level": contract.level,
        "parent_id": contract.parent_id,
        "teacher_id": contract.teacher_id,
    }
    return data


def _require_contract_parent(s: "Session", contract_id: str, auth_id: str | None) -> tuple[UserProfile, Contract]:
    caller = require_caller(s, auth_id)
    contract = s.get(Contract, contract_id)
    if contract is None:
        raise NotFoundError("Contract")
    if contract.parent.user_id != caller.id:
        raise ForbiddenError("Only the contract's parent can manage payments")
    return caller, contract


def create_payment(s: "Session", payload: dict, auth_id: str | None) -> Payment:
    errors: list[str] = []
    contract_id = v.text(payload, "contract_id", "Contract ID", errors, required=True)
    amount = v.number(payload, "amount", "Amount", errors, required=True, positive=True)
    currency = v.text(payload, "currency", "Currency", errors, max_len=8)
    payment_method = v.text(payload, "payment_method", "Payment method", errors, max_len=64)
    transaction_id = v.text(payload, "transaction_id", "Transaction ID", errors, max_len=255)
    v.raise_for(errors)

    caller, contract = _require_contract_parent(s, contract_id, auth_id)  # type: ignore[arg-type]
    payment = Payment(
        contract_id=contract.id,
        amount=amount,
        currency=(currency or DEFAULT_CURRENCY).upper(),
        status="PENDING",
        payment_method=payment_method,
        transaction_id=transaction_id,
    )
    s.add(payment)
    s.flush()
    record_event(
        s,
        actor=caller,
        action="payment.create",
        entity_type="Payment",
        entity_id=payment.id,
        metadata={"contract_id": contract.id, "amount": amount, "currency": payment.currency},
    )
    return payment


def get_payment(s: "Session", payment_id: str) -> Payment:
    payment = s.get(Payment, payment_id)
    if payment is None:
        raise NotFoundError("Payment")
    return payment


def update_payment(s: "Session", payment_id: str, payload: dict, auth_id: str | None) -> Payment:
    errors: list[str] = []
    status = v.choice(payload, "status", "Status", PAYMENT_STATUSES, errors)
    transaction_id = v.text(payload, "transaction_id", "Transaction ID", errors, max_len=255)
    paid_at = v.timestamp(payload, "paid_at", "Paid at", errors)
    v.raise_for(errors)

    payment = get_payment(s, payment_id)
    caller, _ = _require_contract_parent(s, payment.contract_id, auth_id)

    changes: dict[str, Any] = {}
    if status and status != payment.status:
        changes["status"] = {"old": payment.status, "new": status}
        payment.status = status
    if transaction_id and transaction_id != payment.transaction_id:
        changes["transaction_id"] = {"old": payment.transaction_id, "new": transaction_id}
        payment.transaction_id = transaction_id
    if paid_at is not None:
        changes["paid_at"] = {"old": payment.paid_at, "new": paid_at}
        payment.paid_at = paid_at
    elif status == "COMPLETED" and payment.paid_at is None:
        payment.paid_at = utcnow()
        changes["paid_at"] = {"old": None, "new": payment.paid_at}

    record_event(
        s,
        actor=caller,
        action="payment.edit",
        entity_type="Payment",
        entity_id=payment.id,
        metadata={"changes": changes},
    )
    return payment


def get_payments_by_contract(s: "Session", contract_id: str, auth_id: str | None) -> list[Payment]:
    require_contract_party(s, contract_id, auth_id)
    stmt = select(Payment).where(Payment.contract_id == contract_id).order_by(Payment.created_at.desc())
    return list(s.execute(stmt).scalars().all())


def get_payments_by_parent(s: "Session", parent_id: str, auth_id: str | None) -> list[Payment]:
    require_parent_caller(s, auth_id, parent_id)
    stmt = (
        select(Payment)
        .join(Contract, Payment.contract_id == Contract.id)
        .where(Contract.parent_id == parent_id)
        .order_by(Payment.created_at.desc())
    )
    return list(s.execute(stmt).scalars().all())
