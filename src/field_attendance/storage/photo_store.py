from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import BinaryIO, Optional

from PIL import Image, UnidentifiedImageError
from werkzeug.utils import secure_filename

from ..common.datetime_utils import now_local
from ..core.constants import DEFAULT_MAX_PHOTO_BYTES, PHOTO_BUCKET
from ..core.exceptions import BackendError, ValidationError

logger = logging.getLogger(__name__)

PHOTO_KINDS = ("check-in", "check-out")


class PhotoStore:
    """Meter photos on local disk, served back under ``url_prefix``.

    Layout: ``<root>/meter-readings/<user_id>/<kind>-<epoch ms>.jpg``.
    """

    def __init__(
        self,
        root: str | Path,
        *,
        url_prefix: str = "/photos",
        max_bytes: int = DEFAULT_MAX_PHOTO_BYTES,
        clock=now_local,
    ):
        self._root = Path(root)
        self._url_prefix = url_prefix.rstrip("/")
        self._max_bytes = int(max_bytes)
        self._clock = clock

    @property
    def root(self) -> Path:
        return self._root

    @property
    def url_prefix(self) -> str:
        return self._url_prefix

    def save(self, *, user_id: int, kind: str, stream: BinaryIO) -> str:
        if kind not in PHOTO_KINDS:
            raise ValidationError(f"Photo type must be one of: {', '.join(PHOTO_KINDS)}")

        data = stream.read(self._max_bytes + 1)
        if not data:
            raise ValidationError("Photo is empty")
        if len(data) > self._max_bytes:
            raise ValidationError(f"Photo is larger than {self._max_bytes // (1024 * 1024)} MB")

        image = self._load_image(data)

        stamp = int(self._clock().timestamp() * 1000)
        filename = secure_filename(f"{kind}-{stamp}.jpg")
        relative = Path(PHOTO_BUCKET) / str(int(user_id)) / filename
        target = self._root / relative

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            image.save(target, format="JPEG", quality=85)
        except OSError as exc:
            logger.error("Saving photo %s failed: %s", target, exc)
            raise BackendError("Failed to store photo") from exc

        logger.info("Stored %s photo for user=%s at %s", kind, user_id, relative)
        return f"{self._url_prefix}/{relative.as_posix()}"

    def resolve(self, relative_path: str) -> Optional[Path]:
        """Absolute path of a stored photo, or None if it escapes the root or is missing."""
        root = self._root.resolve()
        candidate = (root / relative_path).resolve()
        if root not in candidate.parents or not candidate.is_file():
            return None
        return candidate

    @staticmethod
    def _load_image(data: bytes) -> Image.Image:
        try:
            with Image.open(io.BytesIO(data)) as image:
                image.verify()
            # verify() leaves the image unusable; open it again to convert.
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, OSError, SyntaxError) as exc:
            raise ValidationError("Uploaded file is not a valid image") from exc
        if image.mode != "RGB":
            image = image.convert("RGB")
        return image
