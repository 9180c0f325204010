"""Reward distribution and community scoring collaborators.

The core never moves tokens itself.  A verified detection is handed to a
:class:`~lubcore.types.RewardDistributor`; the default one only logs,
and :class:`WebhookRewardDistributor` POSTs the payout to an external
service that performs the transfer.
"""

from __future__ import annotations

import httpx
import structlog

from lubcore.errors import DistributionError
from lubcore.viral.types import ViralDetection

logger = structlog.get_logger()

NEUTRAL_COMMUNITY_SCORE = 50.0


def payout_payload(detection: ViralDetection, token_symbol: str) -> dict[str, object]:
    """JSON body describing one payout.

    ``detection_id`` doubles as the idempotency key on the receiving side.
    """
    return {
        "detection_id": detection.id,
        "challenge_id": detection.challenge_id,
        "recipient_fid": detection.actor.fid,
        "recipient_username": detection.actor.username,
        "amount": detection.reward,
        "token": token_symbol,
        "detection_type": detection.detection_type.value,
        "bonuses": detection.bonuses.to_dict(),
    }


class LoggingRewardDistributor:
    """Records the payout in the log and does nothing else."""

    def __init__(self, token_symbol: str = "LUB") -> None:
        self._token = token_symbol

    def distribute(self, detection: ViralDetection) -> None:
        logger.info(
            "reward_distributed",
            detection_id=detection.id,
            recipient=detection.actor.username,
            amount=detection.reward,
            token=self._token,
        )


class WebhookRewardDistributor:
    """POSTs payouts to an HTTP endpoint.

    Any transport error or non-2xx response raises
    :class:`~lubcore.errors.DistributionError`.
    """

    def __init__(
        self,
        url: str,
        *,
        timeout: float = 10.0,
        token_symbol: str = "LUB",
        client: httpx.Client | None = None,
    ) -> None:
        self._url = url
        self._timeout = timeout
        self._token = token_symbol
        self._client = client

    def _get_client(self) -> httpx.Client:
        """Return a shared :class:`httpx.Client`, creating one lazily."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(timeout=self._timeout)
        return self._client

    def distribute(self, detection: ViralDetection) -> None:
        client = self._get_client()
        try:
            resp = client.post(self._url, json=payout_payload(detection, self._token))
            resp.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise DistributionError(
                f"Distribution webhook returned {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DistributionError(f"Distribution webhook unreachable: {exc}") from exc
        logger.info(
            "reward_webhook_sent",
            detection_id=detection.id,
            amount=detection.reward,
            status=resp.status_code,
        )

    def close(self) -> None:
        """Close the shared HTTP client."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None


class NeutralCommunityScorer:
    """Community signal placeholder: every detection scores 50."""

    def score(self, detection: ViralDetection) -> float:
        return NEUTRAL_COMMUNITY_SCORE
