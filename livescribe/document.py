"""Structured CV document built up from transcribed speech."""

from __future__ import annotations

from typing import Iterable, List, TypeVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data):
        # extraction output uses null for "not mentioned"
        if not isinstance(data, dict):
            return data
        cleaned = {}
        for key, value in data.items():
            if value is None:
                continue
            if isinstance(value, list):
                value = [item for item in value if item is not None]
            cleaned[key] = value
        return cleaned


class PersonalInfo(_Model):
    full_name: str = Field(default="", alias="fullName")
    age: str = ""
    gender: str = ""
    nationality: str = ""
    phone: str = ""
    email: str = ""
    location: str = ""
    title: str = ""


class Experience(_Model):
    company: str = ""
    position: str = ""
    period: str = ""
    description: str = ""


class Education(_Model):
    institution: str = ""
    degree: str = ""
    field: str = ""
    year: str = ""


class Skills(_Model):
    technical: List[str] = Field(default_factory=list)
    soft: List[str] = Field(default_factory=list)


class LanguageSkill(_Model):
    language: str = ""
    level: str = ""


class CVDocument(_Model):
    personal_info: PersonalInfo = Field(default_factory=PersonalInfo, alias="personalInfo")
    summary: str = ""
    experience: List[Experience] = Field(default_factory=list)
    education: List[Education] = Field(default_factory=list)
    skills: Skills = Field(default_factory=Skills)
    languages: List[LanguageSkill] = Field(default_factory=list)
    certificates: List[str] = Field(default_factory=list)
    hobbies: List[str] = Field(default_factory=list)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


_M = TypeVar("_M", bound=BaseModel)


def _clean(value: str | None) -> str:
    return (value or "").strip()


def _key(value: str) -> str:
    return " ".join(value.split()).casefold()


def _merge_scalar(current: str, new: str | None) -> str:
    new = _clean(new)
    return new if new else current


def _merge_strings(current: Iterable[str], new: Iterable[str]) -> List[str]:
    merged: List[str] = []
    seen: set[str] = set()
    for item in [*current, *new]:
        text = _clean(item)
        if not text or _key(text) in seen:
            continue
        seen.add(_key(text))
        merged.append(text)
    return merged


def _record_key(record: BaseModel) -> tuple:
    return tuple(_key(_clean(str(value))) for value in record.model_dump().values())


def _merge_records(current: List[_M], new: List[_M]) -> List[_M]:
    merged: List[_M] = []
    seen: set[tuple] = set()
    for record in [*current, *new]:
        key = _record_key(record)
        if not any(key) or key in seen:
            continue
        seen.add(key)
        merged.append(record.model_copy(update={k: _clean(v) for k, v in record.model_dump().items()}))
    return merged


def merge_documents(current: CVDocument, update: CVDocument) -> CVDocument:
    """Fold an extraction result into the held document.

    Scalars are overwritten only by non-empty values; lists are a union that
    skips entries already present (case and whitespace insensitive), so
    applying the same update twice changes nothing.
    """
    info = current.personal_info
    new_info = update.personal_info
    personal = PersonalInfo(
        **{
            name: _merge_scalar(getattr(info, name), getattr(new_info, name))
            for name in PersonalInfo.model_fields
        }
    )
    return CVDocument(
        personal_info=personal,
        summary=_merge_scalar(current.summary, update.summary),
        experience=_merge_records(current.experience, update.experience),
        education=_merge_records(current.education, update.education),
        skills=Skills(
            technical=_merge_strings(current.skills.technical, update.skills.technical),
            soft=_merge_strings(current.skills.soft, update.skills.soft),
        ),
        languages=_merge_records(current.languages, update.languages),
        certificates=_merge_strings(current.certificates, update.certificates),
        hobbies=_merge_strings(current.hobbies, update.hobbies),
    )


PERSONAL_WEIGHTS = {
    "full_name": 5,
    "age": 3,
    "phone": 4,
    "email": 5,
    "location": 3,
    "title": 5,
    "nationality": 2,
    "gender": 3,
}


def completion_score(document: CVDocument) -> int:
    """Weighted completeness percentage in [0, 100]."""
    info = document.personal_info
    score = sum(weight for name, weight in PERSONAL_WEIGHTS.items() if _clean(getattr(info, name)))
    if len(_clean(document.summary)) > 20:
        score += 10
    if document.experience:
        score += 25
    if document.education:
        score += 15
    if document.skills.technical or document.skills.soft:
        score += 10
    if document.languages:
        score += 5
    if document.certificates:
        score += 3
    if document.hobbies:
        score += 2
    return max(0, min(100, score))


__all__ = [
    "CVDocument",
    "Education",
    "Experience",
    "LanguageSkill",
    "PersonalInfo",
    "Skills",
    "completion_score",
    "merge_documents",
]
