"""Environment flags for python-telegram-bot.

Entry points import this module before anything from ``telegram`` so that
``RetryAfter.retry_after`` is delivered as a ``timedelta`` and the retry
helpers in ``movie_bot.utils`` never see the deprecated float form.
"""

from __future__ import annotations

import os

os.environ.setdefault("PTB_TIMEDELTA", "1")
