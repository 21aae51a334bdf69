"""Photo and file evidence storage on the local filesystem."""

import logging
import re
import uuid
from pathlib import Path

from ..config import get_config
from ..errors import BrigadeError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".heic", ".pdf"}
MAX_EVIDENCE_BYTES = 10 * 1024 * 1024
EVIDENCE_URL_PREFIX = "/evidence"


class EvidenceStore:
    """Writes uploads under the evidence directory and returns their URLs."""

    def __init__(self, base_dir: Path | None = None):
        self.base_dir = base_dir or get_config().evidence_dir

    def store(self, folder: str, filename: str, content: bytes) -> str:
        """Save an upload and return the URL it is served from.

        Raises:
            BrigadeError: for unsupported file types or oversized uploads.
        """
        suffix = Path(filename).suffix.lower()
        if suffix not in ALLOWED_EXTENSIONS:
            raise BrigadeError(f"Unsupported evidence type: {suffix or filename}")
        if len(content) > MAX_EVIDENCE_BYTES:
            raise BrigadeError("Evidence file is larger than 10 MB")

        safe_folder = re.sub(r"[^A-Za-z0-9_-]", "_", folder) or "misc"
        stem = re.sub(r"[^A-Za-z0-9_-]", "_", Path(filename).stem)[:40] or "file"
        name = f"{uuid.uuid4().hex[:12]}_{stem}{suffix}"

        target_dir = self.base_dir / safe_folder
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / name).write_bytes(content)

        logger.info("Stored evidence %s/%s (%d bytes)", safe_folder, name, len(content))
        return f"{EVIDENCE_URL_PREFIX}/{safe_folder}/{name}"

    def path_for(self, url: str) -> Path:
        """Filesystem path of a stored evidence URL."""
        relative = url.removeprefix(EVIDENCE_URL_PREFIX).lstrip("/")
        return self.base_dir / relative
