"""Parser for token artifacts (watched file content or ingestion request bodies).

An artifact is UTF-8 text in one of two shapes:

- a bare access token string, or
- a JSON object ``{"access_token": "...", "refresh_token": "..."}`` where
  ``refresh_token`` is optional.

Parsing is permissive: anything that is not a JSON object is taken as a bare
access token. Only a JSON object that lacks a usable ``access_token`` is
rejected, so a well-formed but incomplete update never replaces a good
credential.
"""

import json
from dataclasses import dataclass
from typing import ClassVar, Literal, Optional, Union

from .credentials import CredentialRecord


@dataclass(frozen=True)
class ParseOutcome:
    """Non-credential result of parsing an artifact.

    ``EMPTY`` means there is nothing to apply yet; ``invalid(...)`` means the
    content was recognisable but unusable.
    """

    kind: Literal["empty", "invalid"]
    reason: Optional[str] = None

    EMPTY: ClassVar["ParseOutcome"]

    @classmethod
    def invalid(cls, reason: str) -> "ParseOutcome":
        return cls(kind="invalid", reason=reason)

    @property
    def is_empty(self) -> bool:
        return self.kind == "empty"

    @property
    def is_invalid(self) -> bool:
        return self.kind == "invalid"


ParseOutcome.EMPTY = ParseOutcome(kind="empty")

ParseResult = Union[CredentialRecord, ParseOutcome]


def parse_token_artifact(raw: bytes | str) -> ParseResult:
    """Parse raw artifact content into a credential record.

    Args:
        raw: File content or HTTP body, as bytes or already decoded text

    Returns:
        A CredentialRecord, ``ParseOutcome.EMPTY`` for blank content, or an
        invalid ParseOutcome carrying the reason. Never raises.
    """
    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8-sig")
        except UnicodeDecodeError:
            return ParseOutcome.invalid("content is not valid UTF-8")
    else:
        text = raw

    content = text.strip()
    if not content:
        return ParseOutcome.EMPTY

    try:
        data = json.loads(content)
    except ValueError:
        return CredentialRecord(access_token=content)

    if not isinstance(data, dict):
        # Scalars and arrays are not the structured form; keep the literal text
        return CredentialRecord(access_token=content)

    return _record_from_mapping(data)


def _record_from_mapping(data: dict) -> ParseResult:
    if "access_token" not in data:
        return ParseOutcome.invalid("missing access_token")

    access_token = data["access_token"]
    if not isinstance(access_token, str) or not access_token.strip():
        return ParseOutcome.invalid("access_token must be a non-empty string")

    refresh_token = data.get("refresh_token")
    if refresh_token is not None:
        if not isinstance(refresh_token, str):
            return ParseOutcome.invalid("refresh_token must be a string")
        refresh_token = refresh_token.strip() or None

    return CredentialRecord(
        access_token=access_token.strip(), refresh_token=refresh_token
    )
