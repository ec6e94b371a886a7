"""Pydantic models for Google Drive file responses."""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

from .base import BaseResponse


class DriveFile(BaseModel):
    """Model for a Drive file as returned by the files API."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(description="Drive file ID")
    name: str = Field(description="File name")
    mime_type: str = Field(alias="mimeType", description="MIME type")
    modified_time: str | None = Field(
        None, alias="modifiedTime", description="Last modification time (RFC 3339)"
    )
    size: int | None = Field(None, description="Size in bytes (binary files only)")

    @property
    def uri(self) -> str:
        return f"gdrive:///{self.id}"


# --- Response Models ---


class SearchFilesResponse(BaseResponse):
    """Response model for full-text search."""

    query: str = Field(description="Search text as given")
    results: List[DriveFile] = Field(description="Matching files")
    total_count: int = Field(description="Number of files returned")
    summary: str = Field(description="Human readable result listing")


class ListFilesResponse(BaseResponse):
    """Response model for a page of the file listing."""

    results: List[DriveFile] = Field(description="Files on this page")
    total_count: int = Field(description="Number of files on this page")
    next_cursor: str | None = Field(
        None, description="Cursor for the next page, if more files exist"
    )


class ReadFileResponse(BaseResponse):
    """Response model for file content."""

    file_id: str = Field(description="Drive file ID")
    name: str | None = Field(None, description="File name")
    mime_type: str = Field(description="MIME type of the returned content")
    encoding: Literal["utf-8", "base64"] = Field(
        description="How `content` is encoded"
    )
    content: str = Field(description="File content, text or base64")


class AuthStatusResponse(BaseResponse):
    """Response model for the credential status resource."""

    client_configured: bool = Field(description="Whether GOOGLE_CLIENT_ID is set")
    client_secret_configured: bool = Field(
        description="Whether GOOGLE_CLIENT_SECRET is set"
    )
    credential_installed: bool = Field(
        description="Whether an ambient access token is installed"
    )
    refresh_token_present: bool = Field(
        description="Whether the ambient credential carries a refresh token"
    )
    credential_version: int = Field(
        description="Number of ambient credentials installed since startup"
    )
    token_artifact: str | None = Field(None, description="Watched token artifact")
    watching: bool = Field(description="Whether the token artifact is being watched")
