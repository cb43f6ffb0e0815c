"""
Local record of successful build uploads.
"""

import json
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Optional


def default_builds_dir() -> Path:
    return Path.home() / ".buildup" / "builds"


@dataclass
class UploadMetadata:
    """Written once after a successful upload, never read back by the agent"""
    app_id: str
    app_version_id: str
    host: str
    upload_time: datetime

    def to_dict(self) -> dict:
        return {
            "appID": self.app_id,
            "appVersionID": self.app_version_id,
            "host": self.host,
            "uploadTime": self.upload_time.isoformat()
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def save(self, builds_dir: Optional[Path] = None) -> Path:
        """Write <builds_dir>/<YYYY-MM-DD-HH-MM-SS>.json and return its path."""
        builds_dir = Path(builds_dir) if builds_dir else default_builds_dir()
        builds_dir.mkdir(mode=0o700, parents=True, exist_ok=True)

        data_path = builds_dir / f"{self.upload_time.strftime('%Y-%m-%d-%H-%M-%S')}.json"

        fd = os.open(data_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w") as f:
            f.write(self.to_json())

        return data_path
