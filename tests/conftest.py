from __future__ import annotations

from typing import Callable, Mapping, Optional, Sequence

import pytest

from tests._fixtures.fake_repository import FakeRepository


@pytest.fixture
def fake_repo() -> Callable[..., FakeRepository]:
    """Factory for in-memory repositories keyed by path."""

    def _build(
        files: Mapping[str, Optional[Sequence[tuple[str, str]]]], **kwargs: object
    ) -> FakeRepository:
        return FakeRepository(files, **kwargs)  # type: ignore[arg-type]

    return _build
