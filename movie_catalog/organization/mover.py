import os
import logging
from typing import Iterable

from tqdm import tqdm

from ..models import DeletionReport, OperationResult


class FileRemover:
    """
    Deletes duplicate copies chosen by the caller, one file at a time.
    Every path gets its own outcome; a failure never stops the batch.
    """

    def __init__(self, show_progress: bool = True):
        self.show_progress = show_progress

    def delete_files(self, paths: Iterable[str], dry_run: bool = False) -> DeletionReport:
        report = DeletionReport()
        to_process = list(dict.fromkeys(paths))

        if not to_process:
            logging.info("No files selected for deletion.")
            return report

        logging.info(f"Deleting {len(to_process)} files (DryRun={dry_run})...")

        for path in tqdm(to_process, desc="Deleting", disable=not self.show_progress):
            if dry_run:
                logging.info(f"[DRY RUN] Delete {path}")
                report.results.append(OperationResult(path=path, success=True))
                continue

            try:
                os.remove(path)
                report.results.append(OperationResult(path=path, success=True))
            except OSError as e:
                logging.error(f"Failed to delete {path}: {e}")
                report.results.append(OperationResult(path=path, success=False, error=str(e)))

        logging.info(f"Deleted {report.success_count} of {len(to_process)} files.")
        return report
