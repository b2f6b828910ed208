"""Cross-context message protocol.

A closed tagged union over the four message kinds. Anything else is rejected
at the boundary by ``parse_message``.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter, ValidationError

from privacypal.errors import ErrorCode, PrivacyPalError
from privacypal.models.analysis import AnalysisResult


class MessageType(StrEnum):
    NO_PRIVACY_LINK = "NO_PRIVACY_LINK"
    PRIVACY_LINKS_FOUND = "PRIVACY_LINKS_FOUND"
    PRIVACY_CONTENT_FETCHED = "PRIVACY_CONTENT_FETCHED"
    GET_PRIVACY_POLICY = "GET_PRIVACY_POLICY"


class LinkRef(BaseModel):
    text: str
    href: str


class PageData(BaseModel):
    url: str


class LinksFoundData(BaseModel):
    url: str
    links: list[LinkRef]


class ContentFetchedData(BaseModel):
    url: str  # the policy page, not the page it was found on
    content: str
    analysis: AnalysisResult | None = None


class NoPrivacyLink(BaseModel):
    type: Literal["NO_PRIVACY_LINK"] = "NO_PRIVACY_LINK"
    data: PageData


class PrivacyLinksFound(BaseModel):
    type: Literal["PRIVACY_LINKS_FOUND"] = "PRIVACY_LINKS_FOUND"
    data: LinksFoundData


class PrivacyContentFetched(BaseModel):
    type: Literal["PRIVACY_CONTENT_FETCHED"] = "PRIVACY_CONTENT_FETCHED"
    data: ContentFetchedData


class GetPrivacyPolicy(BaseModel):
    type: Literal["GET_PRIVACY_POLICY"] = "GET_PRIVACY_POLICY"
    domain: str = ""


Message = Annotated[
    NoPrivacyLink | PrivacyLinksFound | PrivacyContentFetched | GetPrivacyPolicy,
    Field(discriminator="type"),
]

TAB_SCOPED: frozenset[MessageType] = frozenset({
    MessageType.NO_PRIVACY_LINK,
    MessageType.PRIVACY_LINKS_FOUND,
    MessageType.PRIVACY_CONTENT_FETCHED,
})

_message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(raw: Any) -> Message:
    """Validate a raw JSON-shaped message into its typed form.

    Raises PrivacyPalError with UNKNOWN_MESSAGE for an unrecognised tag and
    INVALID_MESSAGE for a known tag with a malformed payload.
    """
    if isinstance(raw, BaseModel):
        raw = raw.model_dump(mode="json")
    tag = raw.get("type") if isinstance(raw, dict) else None
    if tag not in {member.value for member in MessageType}:
        raise PrivacyPalError(
            code=ErrorCode.UNKNOWN_MESSAGE,
            message=f"Unknown message type: {tag!r}",
        )
    try:
        return _message_adapter.validate_python(raw)
    except ValidationError as exc:
        raise PrivacyPalError(
            code=ErrorCode.INVALID_MESSAGE,
            message=f"Malformed {tag} message: {exc.error_count()} validation error(s)",
        ) from exc
