"""
File operation utilities for the parallax pipeline.

This module provides path management, structured data saving (JSON, CSV
tables, numpy arrays) and the JSON configuration loader shared by the
export, reporting and configuration code.
"""

import json
import numpy as np
import pandas as pd
from typing import Dict, Any, List, Optional, Union
from pathlib import Path

from utils.logger_config import get_logger

logger = get_logger(__name__)


class PathManager:
    """Manages output paths and directory operations."""

    @staticmethod
    def ensure_directory_exists(path: Path) -> Path:
        """Create ``path`` (and parents) if missing and return it."""
        path = Path(path)
        path.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Ensured directory exists: {path}")
        return path

    @staticmethod
    def unique_directory(base_path: Path, name: str) -> Path:
        """
        Create ``base_path/name``, or ``name(1)``, ``name(2)``... if taken.

        Returns:
            Path: The newly created directory
        """
        base_path = Path(base_path)
        candidate = base_path / name
        counter = 1
        while candidate.exists():
            candidate = base_path / f"{name}({counter})"
            counter += 1
        candidate.mkdir(parents=True)
        logger.info(f"Created result directory: {candidate}")
        return candidate


class DataSaver:
    """Handles saving of various data types in standard formats."""

    @staticmethod
    def save_numpy_array(
        array: np.ndarray,
        output_path: Path,
        filename: str,
        format_type: str = 'npy'
    ) -> bool:
        """
        Save numpy array in specified format.

        Args:
            array: Numpy array to save
            output_path: Output directory
            filename: Output filename (without extension)
            format_type: Format ('npy' or 'csv')

        Returns:
            bool: True if successful
        """
        try:
            output_path = Path(output_path)
            output_path.mkdir(parents=True, exist_ok=True)

            if format_type == 'npy':
                full_path = output_path / f"{filename}.npy"
                np.save(full_path, array)
            elif format_type == 'csv':
                full_path = output_path / f"{filename}.csv"
                np.savetxt(full_path, array, delimiter=',', fmt='%.6f')
            else:
                raise ValueError(f"Unsupported format: {format_type}")

            logger.debug(f"Saved array to {full_path}")
            return True

        except (OSError, ValueError) as e:
            logger.error(f"Failed to save array {filename}: {e}")
            return False

    @staticmethod
    def save_json_data(
        data: Dict[str, Any],
        output_path: Path,
        filename: str,
        indent: int = 2
    ) -> bool:
        """
        Save dictionary data as JSON.

        Args:
            data: Data to save
            output_path: Output directory
            filename: Output filename (without extension)
            indent: JSON indentation

        Returns:
            bool: True if successful
        """
        try:
            output_path = Path(output_path)
            output_path.mkdir(parents=True, exist_ok=True)
            full_path = output_path / f"{filename}.json"

            with open(full_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, ensure_ascii=False, indent=indent, default=str)

            logger.debug(f"Saved JSON to {full_path}")
            return True

        except (OSError, TypeError) as e:
            logger.error(f"Failed to save JSON {filename}: {e}")
            return False

    @staticmethod
    def save_table_csv(
        rows: Union[List[Dict[str, Any]], pd.DataFrame],
        output_path: Path,
        filename: str,
        columns: Optional[List[str]] = None
    ) -> bool:
        """
        Save tabular records as CSV through pandas.

        Args:
            rows: List of row dictionaries or a DataFrame
            output_path: Output directory
            filename: Output filename (without extension)
            columns: Column order (default: as found in ``rows``)

        Returns:
            bool: True if successful
        """
        try:
            output_path = Path(output_path)
            output_path.mkdir(parents=True, exist_ok=True)
            full_path = output_path / f"{filename}.csv"

            df = rows if isinstance(rows, pd.DataFrame) else pd.DataFrame(rows, columns=columns)
            df.to_csv(full_path, index=False)

            logger.debug(f"Saved {len(df)} rows to {full_path}")
            return True

        except OSError as e:
            logger.error(f"Failed to save table {filename}: {e}")
            return False


class MetadataSaver:
    """Builds and saves processing metadata."""

    @staticmethod
    def create_processing_metadata(
        original_size: tuple,
        processed_size: tuple,
        processing_params: Dict[str, Any],
        version: str = "v1.0"
    ) -> Dict[str, Any]:
        """
        Create standardized processing metadata.

        Args:
            original_size: (width, height) of the input photo
            processed_size: (width, height) of the rendered frames
            processing_params: Parameters used in processing
            version: Version identifier

        Returns:
            Dict[str, Any]: Metadata dictionary
        """
        return {
            "version": version,
            "original_size": list(original_size),
            "processed_size": list(processed_size),
            "processing_params": processing_params,
            "size_change_ratio": {
                "width": processed_size[0] / original_size[0],
                "height": processed_size[1] / original_size[1]
            }
        }

    @staticmethod
    def save_json_metadata(metadata: Dict[str, Any], output_path: Path, filename: str) -> bool:
        """Save ``metadata`` as ``output_path/filename`` (``.json`` appended if missing)."""
        stem = filename[:-5] if filename.endswith('.json') else filename
        return DataSaver.save_json_data(metadata, output_path, stem)


class ConfigurationManager:
    """Loads JSON configuration files."""

    @staticmethod
    def load_config_file(config_path: Path) -> Dict[str, Any]:
        """
        Load configuration from JSON file.

        Raises:
            FileNotFoundError: If config file not found
            ValueError: If config file is invalid
        """
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e
