"""
BigQuery-backed record stores.

Provides:
- Parameterized, read-only queries over redemptions, touchpoints and campaigns
- Fraud assessment attachment via a single-row DML update
- Backend failures and timeouts surfaced as DataUnavailableError

Tables live in one dataset: ``{project_id}.{dataset}.redemptions`` etc.
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from google.api_core.exceptions import GoogleAPIError
from google.cloud import bigquery
from pydantic import BaseModel

from promolens.analytics.exceptions import DataUnavailableError, InvalidFilterError
from promolens.analytics.schema import Redemption
from promolens.attribution.schema import Touchpoint
from promolens.stores.base import (
    CampaignMetadata,
    CampaignStore,
    RedemptionStore,
    TouchpointStore,
)

if TYPE_CHECKING:
    from promolens.analytics.filters import DateRange, RedemptionFilter
    from promolens.analytics.schema import FraudAssessment

logger = logging.getLogger(__name__)


class BigQueryStoreConfig(BaseModel):
    """Configuration for BigQuery-backed stores."""

    project_id: str | None = None
    dataset: str = "promolens"
    location: str = "US"
    max_results: int = 100_000
    timeout: int = 120  # seconds

    @classmethod
    def from_env(cls) -> BigQueryStoreConfig:
        """Load configuration from environment variables."""
        return cls(
            project_id=os.getenv("GCP_PROJECT_ID") or os.getenv("PROMOLENS_PROJECT_ID"),
            dataset=os.getenv("PROMOLENS_BQ_DATASET", "promolens"),
            location=os.getenv("PROMOLENS_BQ_LOCATION", "US"),
        )


class BigQueryTableClient:
    """
    Shared BigQuery access for the store classes.

    Example:
        tables = BigQueryTableClient(BigQueryStoreConfig(project_id="acme-analytics"))
        rows = tables.run("SELECT 1", [])
    """

    def __init__(
        self,
        config: BigQueryStoreConfig | None = None,
        client: bigquery.Client | None = None,
    ):
        self.config = config or BigQueryStoreConfig.from_env()
        self._client = client

    @property
    def client(self) -> bigquery.Client:
        """Lazy initialization of BigQuery client."""
        if self._client is None:
            self._client = bigquery.Client(
                project=self.config.project_id,
                location=self.config.location,
            )
        return self._client

    def table_id(self, table: str) -> str:
        return f"{self.config.project_id}.{self.config.dataset}.{table}"

    def run(
        self,
        sql: str,
        params: list[bigquery.ScalarQueryParameter],
    ) -> list[dict[str, Any]]:
        """Execute a parameterized query and return the rows as dicts.

        Rows are fetched inside the call, so paging failures surface here too.

        Raises:
            DataUnavailableError: If the query fails or times out.
        """
        job_config = bigquery.QueryJobConfig(query_parameters=params)
        try:
            query_job = self.client.query(sql, job_config=job_config)
            result = query_job.result(
                max_results=self.config.max_results,
                timeout=self.config.timeout,
            )
            rows = [dict(row.items()) for row in result]
        except (GoogleAPIError, TimeoutError) as e:
            logger.exception("BigQuery request failed")
            raise DataUnavailableError(f"BigQuery request failed: {e}") from e
        logger.debug(f"BigQuery returned {len(rows)} rows")
        return rows

    def execute(
        self,
        sql: str,
        params: list[bigquery.ScalarQueryParameter],
    ) -> int:
        """Execute a DML statement and return the number of affected rows.

        Raises:
            DataUnavailableError: If the statement fails or times out.
        """
        job_config = bigquery.QueryJobConfig(query_parameters=params)
        try:
            query_job = self.client.query(sql, job_config=job_config)
            query_job.result(timeout=self.config.timeout)
        except (GoogleAPIError, TimeoutError) as e:
            logger.exception("BigQuery DML statement failed")
            raise DataUnavailableError(f"BigQuery request failed: {e}") from e
        return query_job.num_dml_affected_rows or 0


class BigQueryRedemptionStore(RedemptionStore):
    """Redemptions stored in the ``redemptions`` table."""

    def __init__(self, tables: BigQueryTableClient | None = None):
        self.tables = tables or BigQueryTableClient()

    def build_query(
        self,
        redemption_filter: RedemptionFilter,
    ) -> tuple[str, list[bigquery.ScalarQueryParameter]]:
        """Build SQL and parameters for a redemption filter."""
        date_range = redemption_filter.date_range
        clauses = ["timestamp >= @start", "timestamp <= @end"]
        params = [
            bigquery.ScalarQueryParameter("start", "TIMESTAMP", date_range.start),
            bigquery.ScalarQueryParameter("end", "TIMESTAMP", date_range.end),
        ]

        optional = {
            "campaign_id": redemption_filter.campaign_id,
            "channel": redemption_filter.channel,
            "discount_type": (
                redemption_filter.discount_type.value if redemption_filter.discount_type else None
            ),
            "country": redemption_filter.country,
        }
        for column, value in optional.items():
            if value is not None:
                clauses.append(f"{column} = @{column}")
                params.append(bigquery.ScalarQueryParameter(column, "STRING", value))

        sql = f"""
        SELECT *
        FROM `{self.tables.table_id("redemptions")}`
        WHERE {" AND ".join(clauses)}
        ORDER BY timestamp
        """
        return sql, params

    def query(self, redemption_filter: RedemptionFilter) -> list[Redemption]:
        sql, params = self.build_query(redemption_filter)
        rows = self.tables.run(sql, params)
        redemptions = [self._row_to_redemption(row) for row in rows]
        logger.debug(f"Loaded {len(redemptions)} redemptions")
        return redemptions

    def attach_fraud_assessment(
        self,
        redemption_id: str,
        assessment: FraudAssessment,
    ) -> None:
        sql = f"""
        UPDATE `{self.tables.table_id("redemptions")}`
        SET fraud_risk_score = @risk_score,
            fraud_risk_level = @risk_level,
            review_required = @review_required,
            status = IF(@blocked, 'fraud_flagged', status)
        WHERE redemption_id = @redemption_id
        """
        params = [
            bigquery.ScalarQueryParameter("risk_score", "FLOAT64", assessment.risk_score),
            bigquery.ScalarQueryParameter("risk_level", "STRING", assessment.risk_level.value),
            bigquery.ScalarQueryParameter("review_required", "BOOL", assessment.review_required),
            bigquery.ScalarQueryParameter("blocked", "BOOL", assessment.blocked),
            bigquery.ScalarQueryParameter("redemption_id", "STRING", redemption_id),
        ]
        if not self.tables.execute(sql, params):
            raise DataUnavailableError(f"Redemption not found: {redemption_id}")
        logger.info(f"Attached fraud assessment to {redemption_id}")

    @staticmethod
    def _row_to_redemption(row: dict[str, Any]) -> Redemption:
        patterns = row.get("detected_patterns")
        if isinstance(patterns, str):
            row["detected_patterns"] = json.loads(patterns) if patterns else []
        try:
            return Redemption.from_dict(row)
        except InvalidFilterError as e:
            raise DataUnavailableError(f"Malformed redemption row: {e}") from e


class BigQueryTouchpointStore(TouchpointStore):
    """Touchpoints stored in the ``touchpoints`` table."""

    def __init__(self, tables: BigQueryTableClient | None = None):
        self.tables = tables or BigQueryTableClient()

    def query(self, subject_id: str, date_range: DateRange) -> list[Touchpoint]:
        sql = f"""
        SELECT touchpoint_id, campaign_id, channel, type, timestamp, session_or_user_id
        FROM `{self.tables.table_id("touchpoints")}`
        WHERE session_or_user_id = @subject_id
          AND timestamp >= @start
          AND timestamp <= @end
        ORDER BY timestamp
        """
        params = [
            bigquery.ScalarQueryParameter("subject_id", "STRING", subject_id),
            bigquery.ScalarQueryParameter("start", "TIMESTAMP", date_range.start),
            bigquery.ScalarQueryParameter("end", "TIMESTAMP", date_range.end),
        ]
        rows = self.tables.run(sql, params)
        try:
            return [Touchpoint.from_dict(row) for row in rows]
        except InvalidFilterError as e:
            raise DataUnavailableError(f"Malformed touchpoint row: {e}") from e


class BigQueryCampaignStore(CampaignStore):
    """Campaign metadata stored in the ``campaigns`` table."""

    def __init__(self, tables: BigQueryTableClient | None = None):
        self.tables = tables or BigQueryTableClient()

    def get(self, campaign_id: str) -> CampaignMetadata | None:
        sql = f"""
        SELECT campaign_id, name, budget, objectives, starts_at, ends_at
        FROM `{self.tables.table_id("campaigns")}`
        WHERE campaign_id = @campaign_id
        LIMIT 1
        """
        params = [bigquery.ScalarQueryParameter("campaign_id", "STRING", campaign_id)]
        rows = self.tables.run(sql, params)
        if not rows:
            return None

        row = rows[0]
        return CampaignMetadata(
            campaign_id=row["campaign_id"],
            name=row.get("name") or row["campaign_id"],
            budget=float(row["budget"]) if row.get("budget") is not None else None,
            objectives=tuple(row.get("objectives") or ()),
            starts_at=row.get("starts_at"),
            ends_at=row.get("ends_at"),
        )
