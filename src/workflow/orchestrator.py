"""Per-file validate, repair and reverify workflow."""

import io
import os
import tempfile
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Dict, Optional
import logging

from PIL import Image

from ..exceptions import NotAnImageError, SegmentTooLarge
from ..jpeg import scan_jpeg, locate_xmp
from ..xmp import XmlValidator, ValidationOutcome, repair_jpeg
from ..utils.logger import event_fields

logger = logging.getLogger(__name__)

DEFAULT_OUTPUT_SUFFIX = '.fixed-xmp{timestamp}.jpg'


class DispositionStatus(str, Enum):
    """Terminal state of one processed file."""

    ALREADY_VALID = 'already_valid'
    NO_XMP = 'no_xmp'
    REPAIRED = 'repaired'
    REPAIRABLE = 'repairable'
    NOT_AN_IMAGE = 'not_an_image'
    UNREPAIRABLE = 'unrepairable'


@dataclass
class FileDisposition:
    """Outcome of processing a single file.

    ``output_path`` is set for repaired files; ``validation`` keeps the
    failure that triggered the repair path.
    """

    path: Path
    status: DispositionStatus
    output_path: Optional[Path] = None
    detail: Optional[str] = None
    validation: Optional[ValidationOutcome] = None
    replaced_original: bool = False

    def to_dict(self) -> Dict:
        return {
            'path': str(self.path),
            'status': self.status.value,
            'output_path': str(self.output_path) if self.output_path else None,
            'detail': self.detail,
            'xml_error': self.validation.describe() if self.validation else None,
            'replaced_original': self.replaced_original
        }


class RepairOrchestrator:
    """Run the scan, locate, validate, repair and reverify steps for one file.

    Repaired output is always written to a new file next to the source;
    the source file is never modified here.
    """

    def __init__(
        self,
        run_timestamp: Optional[int] = None,
        output_suffix: str = DEFAULT_OUTPUT_SUFFIX,
        verify_image_decode: bool = False,
        dry_run: bool = False
    ):
        """Initialize orchestrator.

        Args:
            run_timestamp: Millisecond timestamp embedded in output names.
                Defaults to the current time.
            output_suffix: Appended to the source file name; must contain
                ``{timestamp}``
            verify_image_decode: Require repaired output to open with Pillow
            dry_run: Validate and repair in memory only, never write files
        """
        if '{timestamp}' not in output_suffix:
            raise ValueError("output_suffix must contain '{timestamp}'")

        self.run_timestamp = run_timestamp if run_timestamp is not None else int(time.time() * 1000)
        self.output_suffix = output_suffix
        self.verify_image_decode = verify_image_decode
        self.dry_run = dry_run
        self.validator = XmlValidator()

    @classmethod
    def from_config(
        cls,
        config: Dict,
        run_timestamp: Optional[int] = None,
        dry_run: bool = False
    ) -> 'RepairOrchestrator':
        repair_config = config.get('repair', {})
        return cls(
            run_timestamp=run_timestamp,
            output_suffix=repair_config.get('output_suffix', DEFAULT_OUTPUT_SUFFIX),
            verify_image_decode=repair_config.get('verify_image_decode', False),
            dry_run=dry_run
        )

    def output_path_for(self, path: Path) -> Path:
        """Timestamped sibling path that receives the repaired copy."""
        suffix = self.output_suffix.format(timestamp=self.run_timestamp)
        return path.with_name(path.name + suffix)

    def process_file(self, path: Path) -> FileDisposition:
        """Process one file, converting every failure into a disposition.

        Args:
            path: JPEG file to check and repair

        Returns:
            FileDisposition
        """
        path = Path(path)

        try:
            data = path.read_bytes()
            return self.process_bytes(path, data)
        except Exception as e:
            logger.error(
                f"Unrecoverable error processing file: {path} - {e}",
                exc_info=True,
                extra=event_fields('unrecoverable_error', path)
            )
            return FileDisposition(path, DispositionStatus.UNREPAIRABLE, detail=str(e))

    def process_bytes(self, path: Path, data: bytes) -> FileDisposition:
        """Run the workflow on an in-memory copy of ``path``."""
        try:
            container = scan_jpeg(data)
        except NotAnImageError as e:
            logger.warning(
                f"POSSIBLE CORRUPTION: not a readable JPEG: {path} ({e})",
                extra=event_fields('not_an_image', path)
            )
            return FileDisposition(path, DispositionStatus.NOT_AN_IMAGE, detail=str(e))

        xmp = locate_xmp(container)
        if xmp is None:
            logger.warning(
                f"No XMP data available for file: {path}",
                extra=event_fields('no_xmp', path)
            )
            return FileDisposition(path, DispositionStatus.NO_XMP)

        outcome = self.validator.validate(xmp.xml)
        if outcome.valid:
            logger.debug(
                f"XMP XML is well-formed: {path}",
                extra=event_fields('already_valid', path)
            )
            return FileDisposition(path, DispositionStatus.ALREADY_VALID)

        logger.info(f"XMP XML {outcome.describe()}: {path}")

        try:
            candidate = repair_jpeg(container, xmp)
        except SegmentTooLarge as e:
            logger.error(
                f"Cannot rewrite XMP segment of {path}: {e}",
                extra=event_fields('unrepairable', path)
            )
            return FileDisposition(
                path, DispositionStatus.UNREPAIRABLE, detail=str(e), validation=outcome
            )

        failure = self._reverify(candidate.data)
        if failure:
            logger.error(
                f"Parsing failed after trimming of XMP XML: {path} - {failure}",
                extra=event_fields('unrepairable', path)
            )
            return FileDisposition(
                path, DispositionStatus.UNREPAIRABLE, detail=failure, validation=outcome
            )

        if self.dry_run:
            logger.info(
                f"XMP XML can be repaired by trimming {candidate.bytes_removed} bytes: {path}",
                extra=event_fields('repairable', path)
            )
            return FileDisposition(path, DispositionStatus.REPAIRABLE, validation=outcome)

        output_path = self.output_path_for(path)
        self._write_output(output_path, candidate.data)

        logger.info(
            f"{output_path} XMP XML has been trimmed.",
            extra=event_fields('repaired', path)
        )
        return FileDisposition(
            path, DispositionStatus.REPAIRED, output_path=output_path, validation=outcome
        )

    def _reverify(self, data: bytes) -> Optional[str]:
        """Check a repaired buffer end to end.

        Returns:
            None if the candidate is good, otherwise a failure description
        """
        try:
            container = scan_jpeg(data)
        except NotAnImageError as e:
            return f"repaired file is not a valid JPEG: {e}"

        xmp = locate_xmp(container)
        if xmp is None:
            return "XMP packet missing from repaired file"

        outcome = self.validator.validate(xmp.xml)
        if not outcome.valid:
            return outcome.describe()

        if self.verify_image_decode:
            return self._check_image_header(data)

        return None

    @staticmethod
    def _check_image_header(data: bytes) -> Optional[str]:
        """Open ``data`` with Pillow without decoding pixel data.

        A decompression bomb warning is raised only after the header has been
        parsed, so very large images still count as readable.
        """
        try:
            with Image.open(io.BytesIO(data)) as img:
                img.verify()
        except Image.DecompressionBombError:
            return None
        except Exception as e:
            return f"repaired file does not open as an image: {e}"
        return None

    @staticmethod
    def _write_output(output_path: Path, data: bytes) -> None:
        """Write ``data`` so that ``output_path`` is never seen half-written."""
        fd, tmp_name = tempfile.mkstemp(
            dir=output_path.parent,
            prefix=f".{output_path.name}.",
            suffix='.tmp'
        )
        try:
            with os.fdopen(fd, 'wb') as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, output_path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
