"""
Base file management for pipeline outputs.

Subclasses own one output folder per case and add their stage-specific save
operations on top of the shared directory setup, metadata saving and
operation statistics kept here.
"""

from pathlib import Path
from typing import Dict, Any
from abc import ABC, abstractmethod

from utils.file_operations import PathManager, MetadataSaver
from utils.logger_config import get_logger


class BaseFileManager(ABC):
    """
    Base class for file management operations.

    Provides:
    - Output directory setup per case
    - Metadata saving
    - Success/failure statistics for save operations
    """

    def __init__(self, base_output_path: Path, folder_name: str = ""):
        """
        Initialize base file manager.

        Args:
            base_output_path: Base path for output files
            folder_name: Sub-folder for this output type ("" writes directly
                into ``base_output_path``)
        """
        self.base_output_path = Path(base_output_path)
        self.folder_name = folder_name
        self.logger = get_logger(f"{__name__}.{self.__class__.__name__}")
        self.reset_processing_statistics()

    def setup_output_directories(self, case_name: str) -> Dict[str, Path]:
        """
        Create the output directory for ``case_name``.

        Returns:
            Dict[str, Path]: ``{'output': <directory>}``
        """
        folder = self.base_output_path
        if self.folder_name:
            folder = folder / self.folder_name
        output_folder = PathManager.ensure_directory_exists(folder / case_name)

        self.logger.info(f"Set up output directory for {case_name}: {output_folder}")
        return {'output': output_folder}

    def record_operation(self, name: str, success: bool) -> bool:
        """Count one save operation and log failures."""
        self.processing_stats['total_operations'] += 1
        if success:
            self.processing_stats['successful_operations'] += 1
        else:
            self.processing_stats['failed_operations'] += 1
            self.logger.error(f"Save operation failed: {name}")
        return success

    def save_metadata(self, metadata: Dict[str, Any], output_paths: Dict[str, Path],
                      case_name: str, filename_prefix: str = "metadata") -> Dict[str, bool]:
        """
        Save metadata to JSON files in all specified paths.

        Args:
            metadata: Metadata dictionary to save
            output_paths: Dictionary of output paths
            case_name: Name used in the file name
            filename_prefix: Prefix for the metadata filename

        Returns:
            Dict[str, bool]: Save results for each location
        """
        results = {}
        filename = f'{filename_prefix}_{case_name}.json'

        for location_name, path in output_paths.items():
            success = MetadataSaver.save_json_metadata(metadata, path, filename)
            results[f'{location_name}_metadata'] = self.record_operation(str(path / filename), success)

        return results

    def log_save_results(self, case_name: str, results: Dict[str, bool]) -> None:
        """Log a one-line summary of ``results`` plus any failures."""
        successful = sum(1 for success in results.values() if success)
        self.logger.info(f"Save results for {case_name}: {successful}/{len(results)} operations successful")

        failed = [name for name, success in results.items() if not success]
        if failed:
            self.logger.warning(f"Failed operations: {failed}")

    def get_processing_statistics(self) -> Dict[str, Any]:
        """
        Get current processing statistics.

        Returns:
            Dict[str, Any]: Counters plus ``success_rate``
        """
        stats = self.processing_stats.copy()
        total = stats['total_operations']
        stats['success_rate'] = stats['successful_operations'] / total if total > 0 else 0
        return stats

    def reset_processing_statistics(self) -> None:
        """Reset processing statistics counters."""
        self.processing_stats = {
            'total_operations': 0,
            'successful_operations': 0,
            'failed_operations': 0
        }

    @abstractmethod
    def get_folder_name(self) -> str:
        """
        Get the specific folder name for this file manager type.

        Returns:
            str: Folder name for this output type
        """
