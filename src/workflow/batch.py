"""Batch driver: walk a path, repair each JPEG and replace originals on request."""

import json
import os
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Dict, Iterable, List, Optional
import logging

from tqdm import tqdm

from .orchestrator import RepairOrchestrator, FileDisposition, DispositionStatus
from ..utils.logger import event_fields

logger = logging.getLogger(__name__)

REPAIRED_OUTPUT_MARKER = '.fixed-xmp'


class BatchRepairer:
    """Process every eligible file under a root path.

    Files are independent: each gets its own orchestrator call and any
    failure is captured as that file's disposition.
    """

    def __init__(
        self,
        orchestrator: RepairOrchestrator,
        extensions: Iterable[str] = ('.jpg', '.jpeg'),
        overwrite_originals: bool = False,
        max_workers: int = 1,
        skip_repaired_outputs: bool = True,
        show_progress: bool = False
    ):
        """Initialize batch repairer.

        Args:
            orchestrator: Per-file workflow
            extensions: Eligible file extensions (case-insensitive)
            overwrite_originals: Replace each original with its repaired copy
            max_workers: Number of parallel worker threads
            skip_repaired_outputs: Ignore files produced by earlier runs
            show_progress: Display a progress bar
        """
        self.orchestrator = orchestrator
        self.extensions = tuple(ext.lower() for ext in extensions)
        self.overwrite_originals = overwrite_originals
        self.max_workers = max(1, max_workers)
        self.skip_repaired_outputs = skip_repaired_outputs
        self.show_progress = show_progress

    @classmethod
    def from_config(cls, config: Dict, orchestrator: RepairOrchestrator) -> 'BatchRepairer':
        repair_config = config.get('repair', {})
        workflow_config = config.get('workflow', {})
        return cls(
            orchestrator,
            extensions=workflow_config.get('extensions', ['.jpg', '.jpeg']),
            overwrite_originals=repair_config.get('overwrite_originals', False),
            max_workers=workflow_config.get('parallel_workers', 1),
            skip_repaired_outputs=repair_config.get('skip_repaired_outputs', True),
            show_progress=workflow_config.get('show_progress', False)
        )

    def is_eligible(self, path: Path) -> bool:
        """Check extension and, optionally, whether the file is an earlier repair output."""
        if path.suffix.lower() not in self.extensions:
            return False
        if self.skip_repaired_outputs and REPAIRED_OUTPUT_MARKER in path.name:
            return False
        return True

    def collect_files(self, root: Path) -> List[Path]:
        """Find eligible files under ``root``.

        Args:
            root: A single file or a directory to search recursively

        Returns:
            Sorted list of file paths
        """
        root = Path(root)

        if root.is_file():
            if self.is_eligible(root):
                return [root]
            logger.debug(f"Skipping non-JPEG file: {root}")
            return []

        files = sorted(
            path for path in root.rglob('*')
            if path.is_file() and self.is_eligible(path)
        )
        logger.info(f"Found {len(files)} JPEG files in {root}")
        return files

    def process_batch(self, paths: List[Path]) -> Dict:
        """Repair a list of files.

        Args:
            paths: Files to process

        Returns:
            Dict with batch summary (see ``summarize``)
        """
        total = len(paths)
        results: List[FileDisposition] = []

        logger.info(f"Processing batch of {total} files with {self.max_workers} workers...")

        with tqdm(total=total, unit='file', disable=not self.show_progress) as progress:
            if self.max_workers == 1:
                for path in paths:
                    results.append(self._process_one(path))
                    progress.update(1)
            else:
                with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                    futures = {
                        executor.submit(self._process_one, path): path
                        for path in paths
                    }

                    try:
                        for future in as_completed(futures):
                            results.append(future.result())
                            progress.update(1)
                    except KeyboardInterrupt:
                        logger.warning(
                            f"Interrupted after {len(results)} of {total} files; "
                            f"cancelling pending files"
                        )
                        executor.shutdown(wait=True, cancel_futures=True)
                        raise

        results.sort(key=lambda disposition: str(disposition.path))
        summary = self.summarize(results)

        logger.info(
            f"Batch complete: {summary['repaired']} repaired, "
            f"{summary['repairable']} repairable, "
            f"{summary['already_valid']} already valid, "
            f"{summary['no_xmp']} without XMP, "
            f"{summary['not_an_image']} not images, "
            f"{summary['unrepairable']} unrepairable",
            extra={'event': 'batch_summary'}
        )

        return summary

    def run(self, root: Path, report_file: Optional[Path] = None) -> Dict:
        """Collect and process every eligible file under ``root``."""
        summary = self.process_batch(self.collect_files(root))
        if report_file:
            self.write_report(summary, Path(report_file))
        return summary

    def _process_one(self, path: Path) -> FileDisposition:
        disposition = self.orchestrator.process_file(path)
        if disposition.status == DispositionStatus.REPAIRED and self.overwrite_originals:
            self._replace_original(disposition)
        return disposition

    def _replace_original(self, disposition: FileDisposition) -> None:
        """Move the repaired copy over the original in one rename.

        On failure the timestamped copy is left in place.
        """
        try:
            os.replace(disposition.output_path, disposition.path)
        except OSError as e:
            logger.warning(
                f"Set to overwrite existing files, but couldn't overwrite: "
                f"{disposition.path} ({e}). Repaired copy kept at {disposition.output_path}",
                extra=event_fields('overwrite_failed', disposition.path)
            )
            return

        logger.info(f"{disposition.path} replaced with repaired copy")
        disposition.output_path = disposition.path
        disposition.replaced_original = True

    @staticmethod
    def summarize(results: List[FileDisposition]) -> Dict:
        """Count dispositions by status.

        Returns:
            Dict with 'total', one count per status value and 'results'
        """
        summary = {'total': len(results)}
        for status in DispositionStatus:
            summary[status.value] = sum(1 for r in results if r.status == status)
        summary['results'] = results
        return summary

    @staticmethod
    def write_report(summary: Dict, report_file: Path) -> None:
        """Write the batch summary as JSON."""
        report = dict(summary)
        report['results'] = [r.to_dict() for r in summary['results']]

        report_file.parent.mkdir(parents=True, exist_ok=True)
        with open(report_file, 'w', encoding='utf-8') as f:
            json.dump(report, f, indent=2)

        logger.info(f"Report written to: {report_file}")
