"""
Archive export for completed sessions.
"""
import io
import logging
import os
import tempfile
import zipfile
from datetime import datetime, timezone
from typing import Callable, List, Optional

import pydantic

from .errors import ExportFailure
from .models import Answer, Session
from .schemas import InterviewInfo
from ..config import ARCHIVE_SUFFIX, NO_ANSWER_TEXT

logger = logging.getLogger("export")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a trailing Z."""
    return moment.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def answer_text(answer: Optional[Answer]) -> str:
    if answer is None or not answer.transcript:
        return NO_ANSWER_TEXT
    return answer.transcript


def video_names(count: int) -> List[str]:
    """File names for the recorded parts of one answer."""
    if count <= 0:
        return []
    return ["answer_video.webm"] + [f"answer_video_part{k}.webm" for k in range(2, count + 1)]


class ExportComposer:
    """Builds the downloadable archive of a session."""

    def __init__(self, clock: Callable[[], datetime] = _utc_now):
        self.clock = clock

    def build_info(self, session: Session) -> InterviewInfo:
        return InterviewInfo(
            template_name=session.template.name,
            interview_id=session.session_id,
            timestamp=format_timestamp(self.clock()),
            template_questions=session.questions,
            language=session.language,
        )

    def render_summary(self, session: Session) -> str:
        """Title, interview id, then every question with its answer."""
        lines = [
            f"Summary of Your {session.template.name}",
            f"Interview ID: {session.session_id}",
        ]
        for index, question in enumerate(session.questions):
            answer = session.answers[index] if index < len(session.answers) else None
            lines.append("")
            lines.append(question)
            lines.append(answer_text(answer))
        return "\n".join(lines) + "\n"

    def compose(self, session: Session) -> bytes:
        """
        Build the ZIP archive in memory.

        Raises:
            ExportFailure: The archive could not be assembled
        """
        root = session.session_id
        try:
            info = self.build_info(session)
            buffer = io.BytesIO()
            with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as archive:
                archive.writestr(f"{root}/interview_info.json", info.model_dump_json(by_alias=True))
                for index, question in enumerate(session.questions):
                    folder = f"{root}/answers/Question_{index + 1}"
                    answer = session.answers[index] if index < len(session.answers) else None
                    archive.writestr(f"{folder}/question.txt", question)
                    archive.writestr(f"{folder}/answer_text.txt", answer_text(answer))
                    if answer is None:
                        continue
                    for name, artifact in zip(video_names(len(answer.media)), answer.media):
                        archive.writestr(f"{folder}/{name}", artifact.data)
                archive.writestr(f"{root}/answers/summary.txt", self.render_summary(session))
        except (pydantic.ValidationError, zipfile.BadZipFile, ValueError, OSError) as e:
            logger.error(f"Failed to build archive for {root}: {e}")
            raise ExportFailure(f"There was an error creating your download: {e}") from e
        return buffer.getvalue()

    def export(self, session: Session, output_dir: str) -> str:
        """
        Write ``{sessionId}_interview.zip`` into ``output_dir``.

        Returns:
            Path of the written archive

        Raises:
            ExportFailure: Packaging or writing failed; safe to retry
        """
        content = self.compose(session)
        path = os.path.join(output_dir, f"{session.session_id}{ARCHIVE_SUFFIX}")
        try:
            os.makedirs(output_dir, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=output_dir, suffix=".part")
            try:
                with os.fdopen(fd, "wb") as f:
                    f.write(content)
                os.replace(tmp_path, path)
            except OSError:
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
                raise
        except OSError as e:
            logger.error(f"Failed to write archive {path}: {e}")
            raise ExportFailure(f"There was an error saving your download: {e}") from e
        logger.info(f"Exported {len(content)} bytes to {path}")
        return path
