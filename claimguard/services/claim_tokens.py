"""Claim Token Service - issue, validate and redeem prize claim tokens.

Token states:
- active: is_used is False and expires_at is in the future
- used: is_used is True (terminal, set only by use_token)
- expired: is_used is False and expires_at has passed (derived, never stored)
- purged: row deleted by cleanup_expired_tokens after the retention window

Every public method returns a result model instead of raising. IP-scoped
operations consult the fraud guard first, and every outcome is appended to
the security audit log after the token store has been touched.

Issuance reuses a still-active token of the same type for the participant.
The check and the insert are separate statements, so two concurrent calls
for the same participant can both insert; redemption on the other hand is
guarded by the ``is_used = false`` predicate of its UPDATE.
"""

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import and_, case, delete, func, or_, select, update
from sqlalchemy.engine import CursorResult
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from claimguard.core.config import settings
from claimguard.core.logging import get_logger
from claimguard.models.claim_token import ClaimToken
from claimguard.models.participant import (
    PAYMENT_STATUS_PAID,
    ROUND_STATUS_COMPLETED,
    Game,
    Participant,
    Round,
)
from claimguard.models.security_event import SecurityEventType
from claimguard.schemas.claim_token import (
    ClaimTokenView,
    ParticipantSummary,
    PrizeSummary,
    TokenResult,
    TokenStatistics,
    TokenTypeCount,
    UsageWindow,
)
from claimguard.services.audit import SYSTEM_IP, SecurityAuditLog
from claimguard.services.fraud_guard import FraudGuard
from claimguard.services.token_format import (
    as_utc,
    generate_token,
    is_valid_token_format,
    mask_token,
    utcnow,
)

logger = get_logger("claim_tokens")

DEFAULT_TOKEN_TYPE = "winner_claim"

# Caller-facing messages. Internal error details only go to logs.
ERR_NOT_ELIGIBLE = "Invalid participant or not a winner"
ERR_INVALID_EXPIRY = "Expiry must be a positive number of seconds"
ERR_GENERATION_FAILED = "Token generation failed"
ERR_BLOCKED = "Access temporarily restricted. Please try again later."
ERR_INVALID_FORMAT = "Invalid token format"
ERR_NOT_FOUND = "Invalid or already used token"
ERR_EXPIRED = "Token has expired"
ERR_VALIDATION_FAILED = "Token validation failed"
ERR_ALREADY_USED = "Token already used or invalid"
ERR_USE_FAILED = "Failed to process token"
ERR_INVALID_EXTENSION = "Extension must be a positive number of seconds"
ERR_NOT_EXTENDABLE = "Token not found or already expired/used"
ERR_EXTEND_FAILED = "Failed to extend token"
ERR_INVALID_RETENTION = "Retention must be at least one day"
ERR_CLEANUP_FAILED = "Cleanup failed"
ERR_STATISTICS_FAILED = "Failed to get statistics"


def build_claim_url(token: str) -> str:
    """Fully qualified claim link for a token."""
    return f"{settings.claim_base_url}/claim/{token}"


class ClaimTokenService:
    """Owns the claim token lifecycle.

    Collaborators are injected: the session factory is the only path to the
    database, ``clock`` supplies "now" for every expiry and window decision,
    and ``token_factory`` mints new token strings.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        audit_log: SecurityAuditLog | None = None,
        fraud_guard: FraudGuard | None = None,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = generate_token,
        claim_url_builder: Callable[[str], str] = build_claim_url,
        default_expiry_seconds: int | None = None,
        statistics_window_days: int | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock
        self._token_factory = token_factory
        self._claim_url_builder = claim_url_builder
        self._audit = audit_log or SecurityAuditLog(session_factory, clock=clock)
        self._fraud_guard = fraud_guard or FraudGuard(session_factory, self._audit, clock=clock)
        self.default_expiry_seconds = (
            default_expiry_seconds or settings.token_default_expiry_seconds
        )
        self.statistics_window_days = statistics_window_days or settings.statistics_window_days

    @property
    def audit_log(self) -> SecurityAuditLog:
        return self._audit

    @property
    def fraud_guard(self) -> FraudGuard:
        return self._fraud_guard

    # --- Issuance ---

    async def generate_token(
        self,
        participant_id: int,
        token_type: str = DEFAULT_TOKEN_TYPE,
        expiry_seconds: int | None = None,
    ) -> TokenResult:
        """Issue a claim token for an eligible winner, reusing an active one."""
        if expiry_seconds is not None and expiry_seconds <= 0:
            return TokenResult(success=False, error=ERR_INVALID_EXPIRY, reason="invalid_expiry")

        try:
            async with self._session_factory() as session:
                if not await self._is_eligible(session, participant_id):
                    return TokenResult(success=False, error=ERR_NOT_ELIGIBLE, reason="not_eligible")

                existing = await self._find_active_token(session, participant_id, token_type)
                if existing is not None:
                    return TokenResult(
                        success=True,
                        token=existing.token,
                        expires_at=as_utc(existing.expires_at),
                        claim_url=self._claim_url_builder(existing.token),
                        existing=True,
                    )

                now = self._clock()
                if expiry_seconds is None:
                    expiry_seconds = self.default_expiry_seconds
                expires_at = now + timedelta(seconds=expiry_seconds)
                token = self._token_factory()
                session.add(
                    ClaimToken(
                        participant_id=participant_id,
                        token=token,
                        token_type=token_type,
                        expires_at=expires_at,
                        is_used=False,
                        created_at=now,
                    )
                )
                await session.commit()
        except Exception as e:
            logger.exception(f"Token generation failed for participant {participant_id}")
            await self._audit.record(
                SecurityEventType.TOKEN_GENERATION_FAILED,
                {"participant_id": participant_id, "token_type": token_type, "error": str(e)},
            )
            return TokenResult(success=False, error=ERR_GENERATION_FAILED, reason="internal_error")

        await self._audit.record(
            SecurityEventType.TOKEN_GENERATED,
            {"participant_id": participant_id, "token_type": token_type, "expires_at": expires_at},
        )
        logger.info(
            f"Issued {token_type} token {mask_token(token)} for participant {participant_id}"
        )
        return TokenResult(
            success=True,
            token=token,
            expires_at=expires_at,
            claim_url=self._claim_url_builder(token),
            existing=False,
        )

    async def get_active_token(
        self, participant_id: int, token_type: str = DEFAULT_TOKEN_TYPE
    ) -> ClaimToken | None:
        """Newest unused, unexpired token of the given type, if any."""
        async with self._session_factory() as session:
            return await self._find_active_token(session, participant_id, token_type)

    # --- Validation and redemption ---

    async def validate_token(self, token: str, ip_address: str | None = None) -> TokenResult:
        """Check a presented token without consuming it."""
        ip_address = ip_address or SYSTEM_IP

        try:
            if await self._fraud_guard.is_blocked(ip_address):
                await self._audit.record(
                    SecurityEventType.BLOCKED_IP_ATTEMPT,
                    {"ip_address": ip_address, "token": mask_token(token)},
                    ip_address=ip_address,
                )
                return TokenResult(
                    success=False, error=ERR_BLOCKED, reason="ip_blocked", blocked=True
                )

            if not is_valid_token_format(token):
                await self._fraud_guard.record_failure(ip_address, "invalid_format", token)
                return TokenResult(success=False, error=ERR_INVALID_FORMAT, reason="invalid_format")

            async with self._session_factory() as session:
                row = await self._find_unused_token(session, token)

            if row is None:
                await self._fraud_guard.record_failure(ip_address, "token_not_found", token)
                return TokenResult(success=False, error=ERR_NOT_FOUND, reason="token_not_found")

            claim: ClaimToken = row.ClaimToken
            if claim.is_expired(self._clock()):
                await self._fraud_guard.record_failure(ip_address, "token_expired", token)
                return TokenResult(
                    success=False, error=ERR_EXPIRED, reason="token_expired", expired=True
                )

            await self._audit.record(
                SecurityEventType.TOKEN_VALIDATED,
                {
                    "token_id": claim.id,
                    "participant_id": claim.participant_id,
                    "ip_address": ip_address,
                },
                ip_address=ip_address,
            )
            return self._claim_payload(row)

        except Exception as e:
            logger.exception(f"Token validation failed for {mask_token(token)}")
            await self._audit.record(
                SecurityEventType.TOKEN_VALIDATION_ERROR,
                {"ip_address": ip_address, "error": str(e)},
                ip_address=ip_address,
            )
            return TokenResult(success=False, error=ERR_VALIDATION_FAILED, reason="internal_error")

    async def use_token(self, token: str, ip_address: str | None = None) -> TokenResult:
        """Validate and atomically mark a token as used."""
        ip_address = ip_address or SYSTEM_IP

        try:
            validation = await self.validate_token(token, ip_address)
            if not validation.success:
                if validation.reason == "token_not_found":
                    return validation.model_copy(update={"error": ERR_ALREADY_USED})
                return validation

            now = self._clock()
            async with self._session_factory() as session:
                result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                    update(ClaimToken)
                    .where(ClaimToken.token == token, ClaimToken.is_used.is_(False))
                    .values(is_used=True, used_at=now, used_by_ip=ip_address)
                    .execution_options(synchronize_session=False)
                )
                await session.commit()

            if result.rowcount == 0:
                return TokenResult(success=False, error=ERR_ALREADY_USED, reason="already_used")

            token_data = validation.token_data
            await self._audit.record(
                SecurityEventType.TOKEN_USED,
                {
                    "token_id": token_data.id,
                    "participant_id": token_data.participant_id,
                    "ip_address": ip_address,
                },
                ip_address=ip_address,
            )
            logger.info(
                f"Token {mask_token(token)} redeemed for participant {token_data.participant_id}"
            )
            return TokenResult(
                success=True,
                token_data=token_data.model_copy(
                    update={"is_used": True, "used_at": now, "used_by_ip": ip_address}
                ),
                participant=validation.participant,
                prize=validation.prize,
            )

        except Exception as e:
            logger.exception(f"Token redemption failed for {mask_token(token)}")
            await self._audit.record(
                SecurityEventType.TOKEN_USAGE_ERROR,
                {"ip_address": ip_address, "error": str(e)},
                ip_address=ip_address,
            )
            return TokenResult(success=False, error=ERR_USE_FAILED, reason="internal_error")

    # --- Maintenance ---

    async def extend_token(self, token: str, additional_seconds: int) -> TokenResult:
        """Push back the expiry of an active token."""
        if additional_seconds <= 0:
            return TokenResult(
                success=False, error=ERR_INVALID_EXTENSION, reason="invalid_extension"
            )

        try:
            now = self._clock()
            async with self._session_factory() as session:
                current = (
                    await session.execute(
                        select(ClaimToken.id, ClaimToken.expires_at).where(
                            ClaimToken.token == token,
                            ClaimToken.is_used.is_(False),
                            ClaimToken.expires_at > now,
                        )
                    )
                ).first()
                if current is None:
                    return TokenResult(
                        success=False, error=ERR_NOT_EXTENDABLE, reason="not_extendable"
                    )

                # Compare-and-set on the expiry we read, still limited to active rows
                result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                    update(ClaimToken)
                    .where(
                        ClaimToken.id == current.id,
                        ClaimToken.is_used.is_(False),
                        ClaimToken.expires_at == current.expires_at,
                        ClaimToken.expires_at > now,
                    )
                    .values(
                        expires_at=as_utc(current.expires_at)
                        + timedelta(seconds=additional_seconds)
                    )
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    await session.rollback()
                    return TokenResult(
                        success=False, error=ERR_NOT_EXTENDABLE, reason="not_extendable"
                    )
                await session.commit()

                new_expiry = as_utc(
                    (
                        await session.execute(
                            select(ClaimToken.expires_at).where(ClaimToken.id == current.id)
                        )
                    ).scalar_one()
                )
        except Exception:
            logger.exception(f"Failed to extend token {mask_token(token)}")
            return TokenResult(success=False, error=ERR_EXTEND_FAILED, reason="internal_error")

        await self._audit.record(
            SecurityEventType.TOKEN_EXTENDED,
            {
                "token": mask_token(token),
                "additional_seconds": additional_seconds,
                "new_expiry": new_expiry,
            },
        )
        return TokenResult(success=True, new_expiry=new_expiry)

    async def cleanup_expired_tokens(self, older_than_days: int | None = None) -> TokenResult:
        """Delete tokens expired, or used, more than ``older_than_days`` ago."""
        days = older_than_days if older_than_days is not None else settings.token_retention_days
        if days < 1:
            return TokenResult(
                success=False, error=ERR_INVALID_RETENTION, reason="invalid_retention"
            )

        try:
            cutoff = self._clock() - timedelta(days=days)
            async with self._session_factory() as session:
                result: CursorResult[Any] = await session.execute(  # type: ignore[assignment]
                    delete(ClaimToken)
                    .where(
                        or_(
                            ClaimToken.expires_at < cutoff,
                            and_(ClaimToken.is_used.is_(True), ClaimToken.used_at < cutoff),
                        )
                    )
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
            deleted_count = result.rowcount
        except Exception:
            logger.exception("Claim token cleanup failed")
            return TokenResult(success=False, error=ERR_CLEANUP_FAILED, reason="internal_error")

        await self._audit.record(
            SecurityEventType.TOKENS_CLEANED,
            {"deleted_count": deleted_count, "older_than_days": days},
        )
        if deleted_count:
            logger.info(f"Removed {deleted_count} claim tokens older than {days} days")
        return TokenResult(success=True, deleted_count=deleted_count)

    async def get_statistics(self) -> TokenStatistics:
        """Aggregate token counts and the recent redemption rate."""
        now = self._clock()
        window_start = now - timedelta(days=self.statistics_window_days)
        used = case((ClaimToken.is_used.is_(True), 1), else_=0)
        unused = ClaimToken.is_used.is_(False)

        try:
            async with self._session_factory() as session:
                totals = (
                    await session.execute(
                        select(
                            func.count(ClaimToken.id),
                            func.sum(used),
                            func.sum(case((and_(unused, ClaimToken.expires_at > now), 1), else_=0)),
                            func.sum(case((and_(unused, ClaimToken.expires_at <= now), 1), else_=0)),
                        )
                    )
                ).one()

                by_type = (
                    await session.execute(
                        select(ClaimToken.token_type, func.count(ClaimToken.id))
                        .group_by(ClaimToken.token_type)
                        .order_by(ClaimToken.token_type)
                    )
                ).all()

                recent = (
                    await session.execute(
                        select(func.count(ClaimToken.id), func.sum(used)).where(
                            ClaimToken.created_at >= window_start
                        )
                    )
                ).one()
        except Exception:
            logger.exception("Failed to compute claim token statistics")
            return TokenStatistics(success=False, error=ERR_STATISTICS_FAILED)

        total, used_count, active, expired = (int(value or 0) for value in totals)
        generated, redeemed = (int(value or 0) for value in recent)

        return TokenStatistics(
            total_tokens=total,
            used_tokens=used_count,
            active_tokens=active,
            expired_tokens=expired,
            by_type=[
                TokenTypeCount(token_type=token_type, count=count) for token_type, count in by_type
            ],
            recent_usage=UsageWindow(
                days=self.statistics_window_days,
                generated=generated,
                used=redeemed,
                usage_rate=round(redeemed / generated * 100, 2) if generated else 0.0,
            ),
        )

    # --- Queries ---

    async def _is_eligible(self, session: AsyncSession, participant_id: int) -> bool:
        """Confirmed, paid winner of a completed round."""
        result = await session.execute(
            select(Participant.id)
            .join(Round, Participant.round_id == Round.id)
            .where(
                Participant.id == participant_id,
                Participant.is_winner.is_(True),
                Participant.payment_status == PAYMENT_STATUS_PAID,
                Round.status == ROUND_STATUS_COMPLETED,
            )
        )
        return result.scalar_one_or_none() is not None

    async def _find_active_token(
        self, session: AsyncSession, participant_id: int, token_type: str
    ) -> ClaimToken | None:
        result = await session.execute(
            select(ClaimToken)
            .where(
                ClaimToken.participant_id == participant_id,
                ClaimToken.token_type == token_type,
                ClaimToken.is_used.is_(False),
                ClaimToken.expires_at > self._clock(),
            )
            .order_by(ClaimToken.created_at.desc(), ClaimToken.id.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _find_unused_token(self, session: AsyncSession, token: str):
        """Unused token row joined with its participant, round and game."""
        result = await session.execute(
            select(
                ClaimToken,
                Participant,
                Round.game_id,
                Game.name.label("game_name"),
                Game.prize_value,
                Game.currency,
            )
            .join(Participant, ClaimToken.participant_id == Participant.id)
            .join(Round, Participant.round_id == Round.id)
            .join(Game, Round.game_id == Game.id)
            .where(ClaimToken.token == token, ClaimToken.is_used.is_(False))
        )
        return result.first()

    @staticmethod
    def _claim_payload(row) -> TokenResult:
        claim: ClaimToken = row.ClaimToken
        participant: Participant = row.Participant

        token_data = ClaimTokenView.model_validate(claim).model_copy(
            update={
                "game_id": row.game_id,
                "expires_at": as_utc(claim.expires_at),
                "created_at": as_utc(claim.created_at),
            }
        )
        return TokenResult(
            success=True,
            token_data=token_data,
            participant=ParticipantSummary(
                id=participant.id,
                first_name=participant.first_name,
                last_name=participant.last_name,
                email=participant.user_email,
                phone=participant.phone,
            ),
            prize=PrizeSummary(
                game_name=row.game_name,
                prize_value=row.prize_value,
                currency=row.currency,
            ),
        )
