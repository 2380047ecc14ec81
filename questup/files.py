"""Loads local documents as reference files."""

import base64
import mimetypes
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .errors import ValidationError
from .models import ReferenceFile

# Upload types accepted by the exam generator
SUPPORTED_MIME_TYPES: Dict[str, str] = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
}


def guess_mime_type(path: Path) -> str:
    """Mime type for a supported upload.

    Raises:
        ValidationError: If the file type is not supported
    """
    mime_type = SUPPORTED_MIME_TYPES.get(path.suffix.lower())
    if mime_type is None:
        guessed, _ = mimetypes.guess_type(path.name)
        supported = ", ".join(sorted(SUPPORTED_MIME_TYPES))
        raise ValidationError(
            f"Unsupported file type for '{path.name}' ({guessed or 'unknown'}); "
            f"supported: {supported}",
            field="files",
        )
    return mime_type


def to_data_uri(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def load_reference_file(path: Union[str, Path]) -> ReferenceFile:
    """Read a local file into a ReferenceFile with a base64 data URI.

    Raises:
        ValidationError: If the file is missing, empty or of an unsupported type
    """
    path = Path(path)
    if not path.is_file():
        raise ValidationError(f"File not found: {path}", field="files")
    mime_type = guess_mime_type(path)
    data = path.read_bytes()
    if not data:
        raise ValidationError(f"File is empty: {path}", field="files")
    return ReferenceFile(name=path.name, data=to_data_uri(data, mime_type), mime_type=mime_type)


def load_reference_files(paths: Iterable[Union[str, Path]]) -> List[ReferenceFile]:
    return [load_reference_file(p) for p in paths]
