"""
Gemini-assisted drafting for job postings and interview invitations.

The routes return plain text for the caller to review and edit; nothing
generated here is stored.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import google.generativeai as genai
from google.api_core.exceptions import GoogleAPIError

from app.studylinker import validation as v
from app.studylinker.errors import AppError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class AIError(AppError):
    code = "AI_GENERATION_FAILED"
    status_code = 500


class AINotConfigured(AIError):
    code = "AI_NOT_CONFIGURED"
    status_code = 500

    def __init__(self, message: str = "Gemini API key is not configured"):
        super().__init__(message)


@dataclass(frozen=True)
class GeminiClient:
    api_key: str
    model_name: str = DEFAULT_MODEL

    @classmethod
    def from_config(cls, config: dict) -> "GeminiClient":
        api_key = (config.get("GEMINI_API_KEY") or "").strip()
        if not api_key:
            raise AINotConfigured()
        return cls(api_key=api_key, model_name=(config.get("GEMINI_MODEL") or DEFAULT_MODEL).strip())

    def generate(self, prompt: str) -> str:
        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model_name)
        response = model.generate_content(prompt)
        # .text raises ValueError when the candidate was blocked
        text = (response.text or "").strip()
        if not text:
            raise ValueError("Empty response from Gemini API")
        return text


def _or_unspecified(value: Any) -> str:
    if isinstance(value, (list, tuple)):
        value = ", ".join(str(item) for item in value if str(item).strip())
    return v.clean_text(value) or "Not specified"


def job_description_prompt(details: dict) -> str:
    requirements = details.get("requirements")
    if isinstance(requirements, (list, tuple)):
        requirements = ", ".join(str(item) for item in requirements)
    requirements = v.clean_text(requirements)
    lines = [
        "Generate a professional and detailed job description for a tuition job posting on StudyLinker, "
        "an online tuition marketplace.",
        "",
        "Job Details:",
        f"- Subject: {_or_unspecified(details.get('subject'))}",
        f"- Education Level: {_or_unspecified(details.get('level'))}",
        f"- Student Age: {_or_unspecified(details.get('student_age'))}",
        f"- Hours Per Week: {_or_unspecified(details.get('hours_per_week'))}",
        f"- Budget: {_or_unspecified(details.get('budget'))}",
    ]
    if requirements:
        lines.append(f"- Additional Requirements: {requirements}")
    lines += [
        "",
        "Please create a comprehensive job description that includes:",
        "1. A clear introduction about what the parent is looking for",
        "2. Specific requirements for the teacher (experience, qualifications, teaching style)",
        "3. Learning goals and objectives for the student",
        "4. Preferred schedule and availability",
        "5. Any additional preferences or expectations",
        "",
        "Make it professional, clear, and appealing to qualified teachers. Keep it between 150-250 words.",
    ]
    return "\n".join(lines)


def format_interview_date(raw: Any) -> str:
    """Long English date, ``TBD`` when missing, the raw value when unparseable."""
    if raw is None or not str(raw).strip():
        return "TBD"
    try:
        dt = v.parse_datetime(raw)
    except ValueError:
        return str(raw)
    return dt.strftime("%A, %B %d, %Y at %I:%M %p UTC") if dt else "TBD"


def meeting_description_prompt(details: dict) -> str:
    teacher_name = v.clean_text(details.get("teacher_name")) or "Applicant"
    return "\n".join(
        [
            "Generate a professional and concise meeting description for a teacher interview on "
            "StudyLinker Academy, an online tuition marketplace.",
            "",
            "Interview Details:",
            f"- Teacher Name: {teacher_name}",
            f"- Interview Date & Time: {format_interview_date(details.get('interview_date'))}",
            f"- Subjects: {_or_unspecified(details.get('subjects'))}",
            f"- Education Levels: {_or_unspecified(details.get('levels'))}",
            "",
            "Please create a professional meeting description that includes:",
            "1. A welcoming introduction",
            "2. Brief overview of what will be discussed (teaching experience, qualifications, teaching approach)",
            "3. What to expect during the interview",
            "4. Any preparation suggestions",
            "",
            "Make it professional, clear, and friendly. Keep it between 100-150 words.",
        ]
    )


def _generate(config: dict, prompt: str, failure: str) -> str:
    client = GeminiClient.from_config(config)
    try:
        return client.generate(prompt)
    except (GoogleAPIError, ValueError) as e:
        logger.error("%s: %s", failure, e)
        raise AIError(failure) from e


def generate_job_description(config: dict, details: dict) -> str:
    return _generate(config, job_description_prompt(details), "Failed to generate job description")


def generate_meeting_description(config: dict, details: dict) -> str:
    return _generate(config, meeting_description_prompt(details), "Failed to generate meeting description")
