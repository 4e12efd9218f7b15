from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def no_sleep() -> Generator[AsyncMock, None, None]:
    """Disable asyncio.sleep to avoid real delays from retry backoff."""
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep
