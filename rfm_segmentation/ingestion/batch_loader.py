"""
Batch Source Loader

Reads the ShopX source record sets from CSV, JSON Lines or Parquet files and
optionally stages them into the source tables.

Expected files in a source directory (extension per format):
- customer.<ext>
- orders.<ext>
- order_detail.<ext>
"""

import hashlib
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Type, Union

import polars as pl
import structlog
from pydantic import BaseModel

from rfm_segmentation.config import get_settings
from rfm_segmentation.database.connection import get_db
from rfm_segmentation.database.models import Base, Customer, Order, OrderDetail
from rfm_segmentation.database.repository import RFMRepository
from rfm_segmentation.schemas import (
    CUSTOMER_SCHEMA,
    ORDER_DETAIL_SCHEMA,
    ORDER_SCHEMA,
    RecordSets,
    conform,
)

logger = structlog.get_logger(__name__)


class FileFormat(str, Enum):
    """Supported file formats"""
    CSV = "csv"
    JSONL = "jsonl"
    PARQUET = "parquet"


@dataclass
class SourceFile:
    """A source record set and where its file and table live"""
    stem: str
    schema: Dict[str, pl.DataType]
    model: Type[Base]


SOURCE_FILES: Dict[str, SourceFile] = {
    "customers": SourceFile("customer", CUSTOMER_SCHEMA, Customer),
    "orders": SourceFile("orders", ORDER_SCHEMA, Order),
    "order_details": SourceFile("order_detail", ORDER_DETAIL_SCHEMA, OrderDetail),
}


@dataclass
class BatchFileConfig:
    """Configuration for reading one source file"""
    file_path: Union[str, Path]
    file_format: FileFormat
    schema: Dict[str, pl.DataType]
    delimiter: str = ","
    encoding: str = "utf8"
    null_values: List[str] = field(default_factory=lambda: ["", "NULL", "null", "None", "NA", "N/A"])


class LoadResult(BaseModel):
    """Result of staging one file into its table"""
    file_path: str
    target_table: str
    rows_loaded: int = 0
    load_duration_seconds: float = 0
    started_at: datetime
    completed_at: Optional[datetime] = None
    file_hash: Optional[str] = None


class BatchLoader:
    """
    Reads source files into polars frames conformed to the record schemas.

    Example:
        loader = BatchLoader()
        sources = loader.read_sources("data/raw", FileFormat.CSV)
    """

    def _compute_file_hash(self, file_path: Path) -> str:
        """MD5 of the file, recorded with each staged load"""
        hash_md5 = hashlib.md5()
        with open(file_path, "rb") as f:
            for chunk in iter(lambda: f.read(4096), b""):
                hash_md5.update(chunk)
        return hash_md5.hexdigest()

    def _read_csv(self, config: BatchFileConfig) -> pl.DataFrame:
        return pl.read_csv(
            config.file_path,
            separator=config.delimiter,
            encoding=config.encoding,
            null_values=config.null_values,
            try_parse_dates=True,
        )

    def _read_jsonl(self, config: BatchFileConfig) -> pl.DataFrame:
        return pl.read_ndjson(config.file_path)

    def _read_parquet(self, config: BatchFileConfig) -> pl.DataFrame:
        return pl.read_parquet(config.file_path)

    def read(self, config: BatchFileConfig) -> pl.DataFrame:
        """
        Read one file and conform it to its schema.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file lacks every schema column
        """
        file_path = Path(config.file_path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {file_path}")

        readers = {
            FileFormat.CSV: self._read_csv,
            FileFormat.JSONL: self._read_jsonl,
            FileFormat.PARQUET: self._read_parquet,
        }
        df = readers[config.file_format](config)

        missing = [c for c in config.schema if c not in df.columns]
        if len(missing) == len(config.schema):
            raise ValueError(f"{file_path} has none of the expected columns {list(config.schema)}")
        if missing:
            logger.warning("Source file is missing columns", file=str(file_path), missing=missing)

        logger.info(f"Read {len(df)} rows", file=str(file_path))
        return conform(df, config.schema)

    def source_path(self, directory: Union[str, Path], record_type: str, file_format: FileFormat) -> Path:
        """Path of a record type's file inside a source directory"""
        return Path(directory) / f"{SOURCE_FILES[record_type].stem}.{file_format.value}"

    def read_sources(
        self,
        directory: Optional[Union[str, Path]] = None,
        file_format: Optional[FileFormat] = None,
    ) -> RecordSets:
        """
        Read the customer, orders and order_detail files of a directory.

        Args:
            directory: Source directory; defaults to the raw zone
            file_format: File format; defaults to the configured format

        Returns:
            RecordSets with raw (uncleaned) frames
        """
        settings = get_settings()
        directory = Path(directory or settings.data_lake.raw_path)
        file_format = file_format or FileFormat(settings.data_lake.default_format)

        frames = {
            record_type: self.read(BatchFileConfig(
                file_path=self.source_path(directory, record_type, file_format),
                file_format=file_format,
                schema=source.schema,
            ))
            for record_type, source in SOURCE_FILES.items()
        }
        return RecordSets(**frames)

    async def stage_directory(
        self,
        directory: Union[str, Path],
        file_format: FileFormat = FileFormat.CSV,
        replace: bool = True,
    ) -> List[LoadResult]:
        """
        Stage a source directory into the customer, orders and order_detail tables.

        All three tables are written in one transaction; if any file fails
        nothing is staged and the error propagates.

        Args:
            directory: Directory containing the source files
            file_format: Format of the files
            replace: Empty each table before inserting

        Returns:
            One LoadResult per staged file
        """
        results = []
        async with get_db() as db:
            repo = RFMRepository(db)
            for record_type, source in SOURCE_FILES.items():
                file_path = self.source_path(directory, record_type, file_format)
                started_at = datetime.utcnow()
                try:
                    df = self.read(BatchFileConfig(
                        file_path=file_path,
                        file_format=file_format,
                        schema=source.schema,
                    ))
                    rows = await repo.stage_records(source.model, df, replace=replace)
                except Exception as e:
                    logger.error("Staging failed", file=str(file_path), error=str(e))
                    raise

                completed_at = datetime.utcnow()
                results.append(LoadResult(
                    file_path=str(file_path),
                    target_table=source.model.__tablename__,
                    rows_loaded=rows,
                    started_at=started_at,
                    completed_at=completed_at,
                    load_duration_seconds=(completed_at - started_at).total_seconds(),
                    file_hash=self._compute_file_hash(file_path),
                ))

        logger.info(
            "Staged source directory",
            directory=str(directory),
            rows=sum(r.rows_loaded for r in results),
        )
        return results
