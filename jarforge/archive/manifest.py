"""JAR manifest model, builder, and wire format."""

from __future__ import annotations

import re
from typing import Any

from pydantic import BaseModel, Field, ValidationError, field_validator

from jarforge.errors import ArchiveFormatError, InvalidArgumentError

MANIFEST_PATH = "META-INF/MANIFEST.MF"
MANIFEST_VERSION = "1.0"

# Bytes per physical manifest line, excluding the line terminator.
MAX_LINE_BYTES = 72

_ATTRIBUTE_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_-]{0,69}$")
_LINE_BREAK = re.compile(r"\r\n|\r|\n")


class Manifest(BaseModel):
    """Main-section attributes of a JAR manifest, in insertion order."""

    attributes: dict[str, str] = Field(
        default_factory=dict,
        description="Attribute name to value, written in insertion order",
    )

    @field_validator("attributes")
    @classmethod
    def _validate_names(cls, value: dict[str, str]) -> dict[str, str]:
        for name, attr in value.items():
            if not _ATTRIBUTE_NAME.match(name):
                raise ValueError(f"Invalid manifest attribute name: {name!r}")
            if "\n" in attr or "\r" in attr or "\0" in attr:
                raise ValueError(f"Manifest attribute {name} contains a line break or NUL")
        return value

    def get(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    def __contains__(self, name: object) -> bool:
        return name in self.attributes

    @property
    def main_class(self) -> str | None:
        return self.attributes.get("Main-Class")

    def to_bytes(self) -> bytes:
        """Render the manifest as ``Name: Value`` lines with CRLF endings.

        Lines longer than 72 bytes are continued on lines that start with a
        single space. Multi-byte characters are never split across lines.
        """
        out = bytearray()
        for name, value in self.attributes.items():
            for chunk in _wrap(f"{name}: {value}".encode("utf-8")):
                out += chunk + b"\r\n"
        out += b"\r\n"
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes) -> Manifest:
        """Parse the main section of a manifest.

        Raises:
            ArchiveFormatError: On undecodable bytes or malformed lines.
        """
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise ArchiveFormatError(f"Manifest is not valid UTF-8: {exc}") from exc

        logical: list[str] = []
        for line in _LINE_BREAK.split(text):
            if not line:
                break  # end of main section
            if line.startswith(" "):
                if not logical:
                    raise ArchiveFormatError("Manifest starts with a continuation line")
                logical[-1] += line[1:]
            else:
                logical.append(line)

        attributes: dict[str, str] = {}
        for line in logical:
            name, sep, value = line.partition(": ")
            if not sep and line.endswith(":"):
                name, sep, value = line[:-1], ":", ""
            if not sep or not _ATTRIBUTE_NAME.match(name):
                raise ArchiveFormatError(f"Malformed manifest line: {line!r}")
            attributes[name] = value
        return cls(attributes=attributes)


def _wrap(line: bytes) -> list[bytes]:
    chunks: list[bytes] = []
    limit = MAX_LINE_BYTES
    prefix = b""
    while len(line) > limit:
        cut = limit
        # Back off to a UTF-8 character boundary.
        while cut > 0 and (line[cut] & 0xC0) == 0x80:
            cut -= 1
        chunks.append(prefix + line[:cut])
        line = line[cut:]
        prefix = b" "
        limit = MAX_LINE_BYTES - 1
    chunks.append(prefix + line)
    return chunks


def build_manifest(tool_id: str, platform_spec: str, main_class: Any | None = None) -> Manifest:
    """Assemble the standard main attributes for a generated archive.

    ``Main-Class`` is present if and only if ``main_class`` is not None; any
    qualified-name object is written using its string form.

    Raises:
        InvalidArgumentError: If a value contains a line break or NUL.
    """
    attributes = {
        "Manifest-Version": MANIFEST_VERSION,
        "Created-By": tool_id,
        "Build-Jdk-Spec": platform_spec,
    }
    if main_class is not None:
        attributes["Main-Class"] = str(main_class)
    try:
        return Manifest(attributes=attributes)
    except ValidationError as exc:
        raise InvalidArgumentError(f"Invalid manifest attributes: {exc}") from exc
