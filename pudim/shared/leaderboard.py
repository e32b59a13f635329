"""
DynamoDB leaderboard store for pudim scores.

Table schema (PudimScores):
    username (S, HASH) + timestamp (S, RANGE): one item per scoring, never
        overwritten. ISO-8601 UTC timestamps sort lexicographically, so the
        latest record for a user is the first item of a descending query.
    score-index GSI on score (N)

Failure policy:
- Reads (latest, top, history, statistics) degrade to None/[]/zeroed data
  and never raise.
- Writes a user would notice losing (save_score, update_consent) open the
  circuit breaker and re-raise.

The store owns its boto3 resource and its own circuit breaker, independent
of the Redis breaker. boto3 is blocking, so calls run in a worker thread.

Concurrent save_score calls for the same user can both pass the
"score changed" check and write two records. De-duplication is best effort.
"""

import asyncio
import json
import logging
import math
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional

import boto3
from boto3.dynamodb.conditions import Key
from botocore.exceptions import BotoCoreError, ClientError

from .background import detach
from .cache_keys import CacheKind
from .circuit_breaker import CircuitBreaker, CircuitBreakerConfig
from .config import LeaderboardConfig
from .logging_utils import error_context
from .types import (
    GitHubStats,
    PudimRank,
    ScoreRecord,
    StatisticsData,
    TopScoreEntry,
    empty_statistics,
)

logger = logging.getLogger(__name__)

SCORE_INDEX = "score-index"


def table_definition(table_name: str) -> dict:
    """CreateTable arguments for the scores table."""
    return {
        "TableName": table_name,
        "KeySchema": [
            {"AttributeName": "username", "KeyType": "HASH"},
            {"AttributeName": "timestamp", "KeyType": "RANGE"},
        ],
        "AttributeDefinitions": [
            {"AttributeName": "username", "AttributeType": "S"},
            {"AttributeName": "timestamp", "AttributeType": "S"},
            {"AttributeName": "score", "AttributeType": "N"},
        ],
        "GlobalSecondaryIndexes": [
            {
                "IndexName": SCORE_INDEX,
                "KeySchema": [{"AttributeName": "score", "KeyType": "HASH"}],
                "Projection": {"ProjectionType": "ALL"},
                "ProvisionedThroughput": {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
            },
        ],
        "BillingMode": "PROVISIONED",
        "ProvisionedThroughput": {"ReadCapacityUnits": 5, "WriteCapacityUnits": 5},
    }


def round_score(score: float) -> int:
    """Round half up, so 10.5 -> 11 (Python's round() would give 10)."""
    return int(math.floor(float(score) + 0.5))


def utc_timestamp() -> str:
    """Current UTC time as 2024-01-01T00:00:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize_username(username: str) -> str:
    """GitHub usernames are case-insensitive."""
    return username.strip().lower()


def to_dynamo(value: Any) -> Any:
    """Convert floats to Decimal (DynamoDB rejects Python floats)."""
    return json.loads(json.dumps(value), parse_float=Decimal)


def from_dynamo(value: Any) -> Any:
    """Convert DynamoDB Decimals back to int/float."""
    if isinstance(value, Decimal):
        if value % 1 == 0:
            return int(value)
        return float(value)
    if isinstance(value, dict):
        return {k: from_dynamo(v) for k, v in value.items()}
    if isinstance(value, list):
        return [from_dynamo(v) for v in value]
    return value


def _error_code(error: BaseException) -> str:
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "")
    return ""


def _latest_per_user(records: list[ScoreRecord]) -> dict[str, ScoreRecord]:
    """Keep the record with the greatest timestamp per normalized username."""
    latest: dict[str, ScoreRecord] = {}
    for record in records:
        username = normalize_username(record["username"])
        existing = latest.get(username)
        if existing is None or record["timestamp"] > existing["timestamp"]:
            latest[username] = {**record, "username": username}
    return latest


def compute_statistics(records: list[ScoreRecord]) -> StatisticsData:
    """
    Aggregate statistics over every stored record.

    total_scores and total_consents count all records (consent grants, not
    consenting users). Everything else uses each user's latest record only.
    """
    if not records:
        return empty_statistics()

    latest = _latest_per_user(records)

    rank_distribution: dict[str, int] = {}
    language_distribution: dict[str, int] = {}
    for record in latest.values():
        rank = record["rank"]["rank"]
        rank_distribution[rank] = rank_distribution.get(rank, 0) + 1
        for language in record["stats"].get("languages") or []:
            name = language["name"]
            language_distribution[name] = language_distribution.get(name, 0) + 1

    scores = [record["score"] for record in latest.values()]

    return {
        "total_scores": len(records),
        "total_consents": sum(1 for r in records if r.get("leaderboard_consent") is True),
        "unique_users": len(latest),
        "rank_distribution": rank_distribution,
        "language_distribution": language_distribution,
        "average_score": sum(scores) / len(scores) if scores else 0,
    }


class LeaderboardStore:
    """Score persistence, consent and leaderboard queries behind a circuit breaker."""

    def __init__(self, config: Optional[LeaderboardConfig] = None, cache=None):
        self.config = config or LeaderboardConfig.from_env()
        self.cache = cache
        self.breaker = CircuitBreaker("dynamodb", CircuitBreakerConfig(cooldown_ms=self.config.cooldown_ms))
        self._dynamodb = None
        self._schema_ready = False

    def _connect(self):
        """Get the DynamoDB resource, or None if disabled or the circuit is open."""
        if not self.config.enabled:
            return None

        if self.breaker.is_open():
            return None

        if self._dynamodb is None:
            kwargs = {"region_name": self.config.region}
            # Only set endpoint for local development
            if self.config.endpoint_url:
                kwargs["endpoint_url"] = self.config.endpoint_url
            if self.config.access_key_id and self.config.secret_access_key:
                kwargs["aws_access_key_id"] = self.config.access_key_id
                kwargs["aws_secret_access_key"] = self.config.secret_access_key
            try:
                self._dynamodb = boto3.resource("dynamodb", **kwargs)
            except (BotoCoreError, ValueError) as e:
                logger.error("Failed to create DynamoDB client", extra=error_context(e))
                self.breaker.open(e)
                return None

        return self._dynamodb

    def _table(self):
        return self._dynamodb.Table(self.config.table_name)

    async def ensure_schema(self) -> bool:
        """
        Make sure the scores table exists, creating it if needed.

        Returns True if the table exists or was created (also when another
        request created it concurrently), False otherwise.
        """
        dynamodb = self._connect()
        if dynamodb is None:
            return False

        if self._schema_ready:
            return True

        client = dynamodb.meta.client
        try:
            await asyncio.to_thread(client.describe_table, TableName=self.config.table_name)
        except ClientError as e:
            if _error_code(e) != "ResourceNotFoundException":
                logger.error("DynamoDB table check failed", extra=error_context(e))
                self.breaker.open(e)
                return False

            if not await self._create_table(client):
                return False
        except BotoCoreError as e:
            logger.error("DynamoDB table check failed", extra=error_context(e))
            self.breaker.open(e)
            return False

        self._schema_ready = True
        return True

    async def _create_table(self, client) -> bool:
        table_name = self.config.table_name
        try:
            await asyncio.to_thread(client.create_table, **table_definition(table_name))
            logger.info(f"Created DynamoDB table {table_name}")
        except ClientError as e:
            # Created by a concurrent request - that's fine
            if _error_code(e) != "ResourceInUseException":
                logger.error("Failed to create DynamoDB table", extra=error_context(e))
                self.breaker.open(e)
                return False
        except BotoCoreError as e:
            logger.error("Failed to create DynamoDB table", extra=error_context(e))
            self.breaker.open(e)
            return False

        try:
            waiter = client.get_waiter("table_exists")
            await asyncio.to_thread(
                waiter.wait,
                TableName=table_name,
                WaiterConfig={"Delay": 1, "MaxAttempts": 30},
            )
        except (BotoCoreError, ClientError) as e:
            logger.error("DynamoDB table did not become active", extra=error_context(e))
            self.breaker.open(e)
            return False
        return True

    async def save_score(
        self,
        username: str,
        score: float,
        rank: PudimRank,
        stats: GitHubStats,
        consent: bool = False,
    ) -> None:
        """
        Append a score record unless the rounded score is unchanged.

        Silently returns when DynamoDB is disabled or unavailable. Raises if
        the write itself fails.
        """
        log_fields = {"username": username, "score": round_score(score), "rank": rank["rank"]}

        if self._connect() is None:
            logger.info(
                "[DynamoDB] SAVE skipped",
                extra={"reason": "DynamoDB disabled or circuit breaker open", **log_fields},
            )
            return

        try:
            if not await self.ensure_schema():
                logger.info("[DynamoDB] SAVE skipped", extra={"reason": "table does not exist", **log_fields})
                return

            existing = await self.get_latest_score(username)
            if existing is not None:
                previous = round_score(existing["score"])
                if previous == round_score(score):
                    logger.info(
                        "[DynamoDB] SAVE skipped",
                        extra={
                            "reason": "score unchanged",
                            "existing_timestamp": existing["timestamp"],
                            **log_fields,
                        },
                    )
                    return
                logger.info(
                    "[DynamoDB] Score changed",
                    extra={
                        "previous_score": previous,
                        "previous_rank": existing["rank"]["rank"],
                        "previous_timestamp": existing["timestamp"],
                        **log_fields,
                    },
                )

            record: ScoreRecord = {
                "username": username,
                "timestamp": utc_timestamp(),
                "score": score,
                "rank": rank,
                "stats": stats,
                "leaderboard_consent": consent,
            }
            await asyncio.to_thread(self._table().put_item, Item=to_dynamo(record))
            self.breaker.close()
        except Exception as e:
            logger.error("[DynamoDB] Failed to save score", extra={**log_fields, **error_context(e)})
            self.breaker.open(e)
            raise

        logger.info(
            "[DynamoDB] SAVE successful",
            extra={"timestamp": record["timestamp"], "is_new_user": existing is None, **log_fields},
        )
        detach(self._refresh_statistics(), f"statistics refresh after saving {username}")

    async def update_consent(self, username: str, consent: bool) -> None:
        """Set leaderboard_consent on the user's latest record only."""
        if self._connect() is None:
            logger.info(
                "[DynamoDB] UPDATE consent skipped",
                extra={"reason": "DynamoDB disabled or circuit breaker open", "username": username},
            )
            return

        try:
            if not await self.ensure_schema():
                logger.info(
                    "[DynamoDB] UPDATE consent skipped",
                    extra={"reason": "table does not exist", "username": username},
                )
                return

            latest = await self.get_latest_score(username)
            if latest is None:
                logger.info(
                    "[DynamoDB] UPDATE consent skipped",
                    extra={"reason": "no score found for user", "username": username},
                )
                return

            await asyncio.to_thread(
                self._table().update_item,
                Key={"username": latest["username"], "timestamp": latest["timestamp"]},
                UpdateExpression="SET leaderboard_consent = :consent",
                ExpressionAttributeValues={":consent": consent},
            )
            self.breaker.close()
        except Exception as e:
            logger.error(
                "[DynamoDB] Failed to update consent",
                extra={"username": username, "consent": consent, **error_context(e)},
            )
            self.breaker.open(e)
            raise

        logger.info(
            "[DynamoDB] UPDATE consent successful",
            extra={"username": username, "consent": consent, "timestamp": latest["timestamp"]},
        )
        detach(self._refresh_statistics(), f"statistics refresh after consent update for {username}")

    async def _query_user(self, username: str, limit: int) -> list[ScoreRecord]:
        response = await asyncio.to_thread(
            self._table().query,
            KeyConditionExpression=Key("username").eq(username),
            ScanIndexForward=False,  # Latest first
            Limit=limit,
        )
        self.breaker.close()
        return [from_dynamo(item) for item in response.get("Items", [])]

    def _scan_all(self) -> list[ScoreRecord]:
        table = self._table()
        items = []
        response = table.scan()
        items.extend(response.get("Items", []))

        while "LastEvaluatedKey" in response:
            response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"])
            items.extend(response.get("Items", []))

        return [from_dynamo(item) for item in items]

    async def get_latest_score(self, username: str) -> Optional[ScoreRecord]:
        """Latest record for a user, or None (never raises)."""
        if self._connect() is None:
            return None

        try:
            if not await self.ensure_schema():
                return None
            records = await self._query_user(username, 1)
        except Exception as e:
            logger.error(
                "Failed to get user latest score from DynamoDB",
                extra={"username": username, **error_context(e)},
            )
            self.breaker.open(e)
            return None

        return records[0] if records else None

    async def get_score_history(self, username: str, limit: int = 10) -> list[ScoreRecord]:
        """Records for a user, newest first (never raises)."""
        if limit < 1:
            return []

        if self._connect() is None:
            return []

        try:
            if not await self.ensure_schema():
                return []
            return await self._query_user(username, limit)
        except Exception as e:
            logger.error(
                "Failed to get user score history from DynamoDB",
                extra={"username": username, **error_context(e)},
            )
            self.breaker.open(e)
            return []

    async def get_top_scores(self, limit: int = 10) -> list[TopScoreEntry]:
        """
        Highest scores among users whose latest record has leaderboard consent.

        One entry per user (latest record), sorted by score descending.
        """
        if self._connect() is None:
            return []

        try:
            if not await self.ensure_schema():
                return []
            records = await asyncio.to_thread(self._scan_all)
            self.breaker.close()
        except Exception as e:
            logger.error("Failed to get top scores from DynamoDB", extra=error_context(e))
            self.breaker.open(e)
            return []

        consenting = [
            record for record in _latest_per_user(records).values()
            if record.get("leaderboard_consent") is True
        ]
        consenting.sort(key=lambda record: record["score"], reverse=True)

        return [
            {
                "username": record["username"],
                "timestamp": record["timestamp"],
                "score": record["score"],
                "rank": record["rank"],
                "avatar_url": record["stats"]["avatar_url"],
                "followers": record["stats"]["followers"],
                "total_stars": record["stats"]["total_stars"],
                "public_repos": record["stats"]["public_repos"],
            }
            for record in consenting[:limit]
        ]

    async def get_statistics(self) -> StatisticsData:
        """Aggregate statistics, served from cache when possible (never raises)."""
        if self.cache is not None:
            cached = await self.cache.get(CacheKind.STATISTICS)
            if cached:
                logger.info("[Statistics] Using cached data")
                return cached

        if self._connect() is None:
            return empty_statistics()

        try:
            if not await self.ensure_schema():
                return empty_statistics()
            logger.info("[Statistics] Fetching from DynamoDB")
            records = await asyncio.to_thread(self._scan_all)
            self.breaker.close()
            statistics = compute_statistics(records)
        except Exception as e:
            logger.error("Failed to get statistics from DynamoDB", extra=error_context(e))
            self.breaker.open(e)
            return empty_statistics()

        if self.cache is not None and records:
            detach(self.cache.set(CacheKind.STATISTICS, None, statistics), "statistics cache write")

        return statistics

    def _delete_all(self) -> int:
        table = self._table()
        deleted = 0
        scan_kwargs = {"ProjectionExpression": "username, #ts", "ExpressionAttributeNames": {"#ts": "timestamp"}}
        with table.batch_writer() as batch:
            response = table.scan(**scan_kwargs)
            while True:
                for item in response.get("Items", []):
                    batch.delete_item(Key={"username": item["username"], "timestamp": item["timestamp"]})
                    deleted += 1
                if "LastEvaluatedKey" not in response:
                    break
                response = table.scan(ExclusiveStartKey=response["LastEvaluatedKey"], **scan_kwargs)
        return deleted

    async def delete_all_scores(self) -> int:
        """
        Delete every score record. Returns the number of items deleted.

        Operational use only (scripts/flush_all.py). Raises on failure.
        """
        if self._connect() is None:
            return 0
        if not await self.ensure_schema():
            return 0
        deleted = await asyncio.to_thread(self._delete_all)
        logger.info(f"[DynamoDB] Deleted {deleted} score records", extra={"deleted": deleted})
        return deleted

    async def _refresh_statistics(self) -> None:
        """Invalidate the cached statistics, then recompute and re-cache them."""
        if self.cache is not None:
            await self.cache.invalidate(CacheKind.STATISTICS)
        await self.get_statistics()
