"""
Parquet persistence for benchmark samples.
"""

import os
import logging
from typing import Optional
from datetime import datetime

import pandas as pd

from configuration import DEFAULT_OUTPUT_DIR, DEFAULT_SAMPLES_PREFIX
from persistence.sample_buffer import SampleBuffer, SAMPLE_COLUMNS

logger = logging.getLogger(__name__)


class ParquetPersistence:
    """Saves the samples of a run to Parquet files and loads them back for analysis.

    Attributes:
        output_dir: Directory where Parquet files will be saved
    """

    def __init__(self, output_dir: str = DEFAULT_OUTPUT_DIR):
        """Initialize Parquet persistence.

        Args:
            output_dir: Directory for saving Parquet files (default: 'results')
        """
        self.output_dir: str = output_dir

        # Ensure output directory exists
        os.makedirs(output_dir, exist_ok=True)

    def save_samples(self, buffer: SampleBuffer, filename_prefix: str = DEFAULT_SAMPLES_PREFIX) -> Optional[str]:
        """Save all written samples to a Parquet file.

        Args:
            buffer: Sample buffer of a finished run
            filename_prefix: Prefix for the generated filename (default: 'samples')

        Returns:
            Path to the saved file, or None if there are no samples to save
        """
        df = buffer.to_dataframe()
        if len(df) == 0:
            logger.warning("No samples to save")
            return None

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        filename = f"{filename_prefix}_{timestamp}.parquet"
        filepath = os.path.join(self.output_dir, filename)

        logger.info(f"Saving {len(df)} samples to {filepath}")
        df.to_parquet(filepath, index=False)
        return filepath

    @staticmethod
    def load_samples(filepath: str) -> pd.DataFrame:
        """Load samples saved by save_samples().

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file lacks the sample columns
        """
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"Parquet file not found: {filepath}")

        df = pd.read_parquet(filepath)
        missing_cols = [col for col in SAMPLE_COLUMNS if col not in df.columns]
        if missing_cols:
            raise ValueError(f"Missing required columns in {filepath}: {missing_cols}")

        logger.info(f"Loaded {len(df)} samples from {filepath}")
        return df
