"""
JSON-lines reader for gateway exports, using Spark.

Each line is one row of the inbound purchase-order table:
``{"id": ..., "company_code": ..., "partner_order_type": ...,
"json_content": ..., "download_timestamp": ...}``. ``json_content`` may be
the document text or the document object itself; Spark keeps the raw JSON
text for a string column either way.
"""

from typing import Optional

from pyspark.sql import DataFrame, SparkSession
from pyspark.sql.functions import col, upper
from pyspark.sql.types import LongType, StringType, StructField, StructType, TimestampType

from edi_canon.core.models import SourceRecord
from edi_canon.observability.logger import get_logger

logger = get_logger(__name__)

CORRUPT_RECORD_COLUMN = "_corrupt_record"

SOURCE_RECORD_SCHEMA = StructType([
    StructField("id", LongType(), nullable=False),
    StructField("company_code", StringType(), nullable=True),
    StructField("partner_order_type", StringType(), nullable=True),
    StructField("json_content", StringType(), nullable=True),
    StructField("download_timestamp", TimestampType(), nullable=True),
    StructField(CORRUPT_RECORD_COLUMN, StringType(), nullable=True),
])


class SourceFileReader:
    """
    Reads exported source records into SourceRecord models.
    """

    def __init__(self, spark: SparkSession):
        """
        Initialize source file reader.

        Args:
            spark: Active Spark session
        """
        self.spark = spark

    def read(self, file_path: str, company: Optional[str] = None) -> DataFrame:
        """
        Read a JSON-lines export into a Spark DataFrame.

        Malformed lines and lines without an id, document or timestamp are
        dropped with a warning.

        Args:
            file_path: Path to file or directory of files
            company: Restrict to one company code (case-insensitive)

        Returns:
            Spark DataFrame ordered by download timestamp and id
        """
        df = self.spark.read \
            .schema(SOURCE_RECORD_SCHEMA) \
            .option("mode", "PERMISSIVE") \
            .option("columnNameOfCorruptRecord", CORRUPT_RECORD_COLUMN) \
            .json(file_path) \
            .cache()

        complete = (
            col(CORRUPT_RECORD_COLUMN).isNull()
            & col("id").isNotNull()
            & col("json_content").isNotNull()
            & col("download_timestamp").isNotNull()
        )
        dropped = df.filter(~complete).count()
        if dropped:
            logger.warning(f"Dropped {dropped} unreadable lines from {file_path}")

        df = df.filter(complete).drop(CORRUPT_RECORD_COLUMN)
        if company:
            df = df.filter(upper(col("company_code")) == company.upper())

        return df.orderBy("download_timestamp", "id")

    def read_records(
        self,
        file_path: str,
        company: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[SourceRecord]:
        """
        Read a JSON-lines export as SourceRecord models.

        Args:
            file_path: Path to file or directory of files
            company: Restrict to one company code (case-insensitive)
            limit: Maximum number of records

        Returns:
            List of SourceRecord, oldest download first
        """
        df = self.read(file_path, company=company)
        if limit:
            df = df.limit(limit)

        records = [SourceRecord(**row.asDict()) for row in df.collect()]
        logger.info(f"Read {len(records)} source records from {file_path}")
        return records
