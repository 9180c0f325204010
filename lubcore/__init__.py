"""LubCore — social gamification reward core for the LUB memory-match game.

Three cooperating services live here:

- :mod:`lubcore.antispam` — reputation, rate limits, bans and reports.
- :mod:`lubcore.viral` — viral mention detection, verification and payout.
- :mod:`lubcore.challenges` — time-boxed social challenges.

:mod:`lubcore.services` wires them together from a single
:class:`~lubcore.config.Config`.
"""

from __future__ import annotations

__version__ = "0.1.0"
