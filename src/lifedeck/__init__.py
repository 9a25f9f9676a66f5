"""LifeDeck: daily coaching cards, streaks and achievements."""

from lifedeck.consts import VERSION

__version__ = VERSION
