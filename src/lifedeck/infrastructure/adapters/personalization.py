import logging
from typing import Any

import httpx

from lifedeck.application.id_service import generate_card_id
from lifedeck.domain.constants import AI_REQUEST_TIMEOUT
from lifedeck.domain.models import (
    CardDuration,
    CardPriority,
    CoachingCard,
    LifeDomain,
    UserProfile,
)
from lifedeck.domain.ports import AIPersonalizationService


class HttpPersonalizationService(AIPersonalizationService):
    """Adapter for a card-generation HTTP endpoint.

    Request:  POST {"domain": ..., "profile": {...}}
    Response: {"title", "action", "description", "difficulty", "points",
               "tags", "priority", "duration", "premium"}

    Transport errors propagate to the caller (the generator absorbs them);
    a non-200 response or malformed body yields None.
    """

    def __init__(self, url: str, timeout: float = AI_REQUEST_TIMEOUT, api_key: str | None = None):
        self.logger = logging.getLogger(__name__)
        self.url = url
        self._timeout = timeout
        self._headers = {"Authorization": f"Bearer {api_key}"} if api_key else {}
        self._client: httpx.AsyncClient | None = None

    async def generate(self, domain: LifeDomain, profile: UserProfile) -> CoachingCard | None:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout, headers=self._headers)

        payload = {"domain": domain.value, "profile": _profile_summary(profile)}
        resp = await self._client.post(self.url, json=payload)
        if resp.status_code != 200:
            self.logger.warning(f"Personalization endpoint returned {resp.status_code}")
            return None

        try:
            data = resp.json()
        except ValueError:
            self.logger.warning("Personalization endpoint returned non-JSON body")
            return None
        return self._to_card(domain, data)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _to_card(self, domain: LifeDomain, data: Any) -> CoachingCard | None:
        if not isinstance(data, dict) or not data.get("title") or not data.get("action"):
            self.logger.warning(f"Malformed personalization payload: {str(data)[:100]}")
            return None
        try:
            return CoachingCard(
                id=generate_card_id(),
                title=str(data["title"]),
                domain=domain,
                action_text=str(data["action"]),
                description=str(data.get("description", "")),
                difficulty=min(3.0, max(1.0, float(data.get("difficulty", 1.5)))),
                points=int(data.get("points", 10)),
                priority=CardPriority(data.get("priority", "medium")),
                duration=CardDuration(data.get("duration", "standard")),
                is_premium=bool(data.get("premium", False)),
                ai_generated=True,
                tags={str(t) for t in data.get("tags", []) or []},
            )
        except (TypeError, ValueError) as e:
            self.logger.warning(f"Malformed personalization payload: {e}")
            return None


def _profile_summary(profile: UserProfile) -> dict[str, Any]:
    return {
        "scores": {d.value: round(s, 1) for d, s in profile.domain_scores.items()},
        "life_score": round(profile.life_score, 1),
        "current_streak": profile.current_streak,
        "total_cards_completed": profile.total_cards_completed,
    }
