from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING, Any

from sqlalchemy import select

from app.studylinker import validation as v
from app.studylinker.audit import record_event
from app.studylinker.errors import NotFoundError, ValidationError
from app.studylinker.modules.contracts.models import Contract
from app.studylinker.modules.reviews.models import Review
from app.studylinker.modules.teachers.models import TeacherProfile
from app.studylinker.modules.users.service import require_parent_caller, user_summary

if TYPE_CHECKING:
    from sqlalchemy.orm import Session


def review_to_dict(review: Review) -> dict[str, Any]:
    data = review.to_dict()
    if review.anonymous:
        data["parent_id"] = None
        data["parent"] = None
    else:
        data["parent"] = {"id": review.parent.id, "user": user_summary(review.parent.user)}
    data["contract"] = {"id": review.contract.id, "subject": review.contract.subject, "level": review.contract.level}
    return data


def validate_review_payload(payload: dict) -> list[str]:
    errors: list[str] = []
    for key, label in (("contract_id", "Contract ID"), ("parent_id", "Parent ID"), ("teacher_id", "Teacher ID")):
        v.text(payload, key, label, errors, required=True)
    rating = v.number(payload, "rating", "Rating", errors, required=True, integer=True)
    if rating is not None and not 1 <= rating <= 5:
        errors.append("Rating must be between 1 and 5")
    v.text(payload, "comment", "Comment", errors, max_len=5000)
    return errors


def recompute_teacher_rating(s: "Session", teacher_id: str) -> TeacherProfile | None:
    """Average of all review ratings (2 decimals, half-up) plus the review count."""
    teacher = s.get(TeacherProfile, teacher_id)
    if teacher is None:
        return None
    ratings = list(s.execute(select(Review.rating).where(Review.teacher_id == teacher_id)).scalars().all())
    if not ratings:
        teacher.rating = 0
        teacher.total_reviews = 0
        return teacher
    average = Decimal(sum(ratings)) / Decimal(len(ratings))
    teacher.rating = float(average.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    teacher.total_reviews = len(ratings)
    return teacher


def create_review(s: "Session", payload: dict, auth_id: str | None) -> Review:
    v.raise_for(validate_review_payload(payload))
    caller, parent = require_parent_caller(s, auth_id, v.clean_text(payload.get("parent_id")))  # type: ignore[arg-type]

    contract = s.get(Contract, v.clean_text(payload.get("contract_id")))
    if contract is None:
        raise NotFoundError("Contract")
    if contract.parent_id != parent.id:
        raise ValidationError("Contract does not belong to this parent")
    if contract.teacher_id != v.clean_text(payload.get("teacher_id")):
        raise ValidationError("Teacher does not match the contract")

    existing = s.execute(
        select(Review.id).where(Review.contract_id == contract.id, Review.parent_id == parent.id)
    ).first()
    if existing:
        raise ValidationError("Review already exists for this contract")

    review = Review(
        contract_id=contract.id,
        parent_id=parent.id,
        teacher_id=contract.teacher_id,
        rating=v.number(payload, "rating", "Rating", [], integer=True),
        comment=v.clean_text(payload.get("comment")),
        anonymous=v.boolean(payload, "anonymous"),
    )
    s.add(review)
    s.flush()

    teacher = recompute_teacher_rating(s, contract.teacher_id)
    record_event(
        s,
        actor=caller,
        action="review.create",
        entity_type="Review",
        entity_id=review.id,
        metadata={
            "teacher_id": contract.teacher_id,
            "rating": review.rating,
            "teacher_rating": teacher.rating if teacher else None,
            "total_reviews": teacher.total_reviews if teacher else None,
        },
    )
    return review


def get_reviews_by_teacher(s: "Session", teacher_id: str) -> list[Review]:
    stmt = select(Review).where(Review.teacher_id == teacher_id).order_by(Review.created_at.desc())
    return list(s.execute(stmt).scalars().all())


def get_reviews_by_contract(s: "Session", contract_id: str) -> list[Review]:
    stmt = select(Review).where(Review.contract_id == contract_id).order_by(Review.created_at.desc())
    return list(s.execute(stmt).scalars().all())
