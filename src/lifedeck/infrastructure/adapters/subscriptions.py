from lifedeck.domain.models import SubscriptionState
from lifedeck.domain.ports import SubscriptionProvider


class StaticSubscriptionProvider(SubscriptionProvider):
    """Serves a fixed subscription state (CLI, tests, hosts without a store)."""

    def __init__(self, state: SubscriptionState | None = None):
        self.state = state or SubscriptionState()

    def current_state(self) -> SubscriptionState:
        return self.state
