import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .models import MovieGroup
from .organization.duplicates import DuplicateCluster, KeepStrategy


def _format_duration(seconds: float) -> str:
    if not seconds:
        return ""
    total = int(round(seconds))
    return f"{total // 3600}:{(total % 3600) // 60:02d}:{total % 60:02d}"


class ReportGenerator:
    """CSV exports of a finished scan."""

    LIBRARY_HEADERS = [
        "Title",
        "Directory",
        "Parts",
        "Total Size",
        "Resolution",
        "Video Codec",
        "Audio Codec",
        "Duration",
        "NFO",
        "Poster",
    ]

    DUPLICATE_HEADERS = [
        "Cluster",
        "Action",
        "Path",
        "Size",
        "Resolution",
        "Video Codec",
    ]

    def generate_library_report(self,
                                groups: Iterable[MovieGroup],
                                output_csv: Union[str, Path],
                                posters: Optional[dict] = None) -> int:
        """
        One row per movie group. `posters` maps group key -> poster path.
        Returns the number of rows written.
        """
        posters = posters or {}
        logging.info(f"Generating library report -> {output_csv}")

        count = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.LIBRARY_HEADERS)

            for group in groups:
                meta = group.metadata
                writer.writerow([
                    group.base_name,
                    group.dir_path,
                    group.part_count,
                    group.total_size,
                    f"{meta.width}x{meta.height}" if meta and meta.width else "",
                    meta.video_codec if meta else "",
                    meta.audio_codec if meta else "",
                    _format_duration(group.total_duration),
                    group.nfo_path or "",
                    posters.get(group.key) or "",
                ])
                count += 1

        logging.info(f"Report complete. Wrote {count} movies.")
        return count

    def generate_duplicate_report(self,
                                  clusters: List[DuplicateCluster],
                                  output_csv: Union[str, Path],
                                  strategy: KeepStrategy = KeepStrategy.HIGHER_RESOLUTION) -> int:
        """
        One row per cluster member, marking the copy kept under `strategy`.
        Nothing is deleted. Returns the number of rows written.
        """
        logging.info(f"Generating duplicate plan ({KeepStrategy(strategy).value}) -> {output_csv}")

        count = 0
        with open(output_csv, "w", newline="", encoding="utf-8") as f:
            writer = csv.writer(f)
            writer.writerow(self.DUPLICATE_HEADERS)

            for cluster in clusters:
                keep = cluster.best_index(strategy)
                for i, vf in enumerate(cluster.files):
                    meta = vf.metadata
                    writer.writerow([
                        cluster.label,
                        "KEEP" if i == keep else "DELETE",
                        vf.path,
                        vf.size,
                        f"{meta.width}x{meta.height}" if meta and meta.width else "",
                        meta.video_codec if meta else "",
                    ])
                    count += 1

        logging.info(f"Duplicate plan complete. {len(clusters)} clusters, {count} files.")
        return count
