"""A token that runs one callback on creation and another on teardown."""

from __future__ import annotations

import weakref
from typing import Callable, Optional


class OnceToken:
    """Run ``on_constructed`` now and ``on_destructed`` exactly once later.

    The teardown callback runs on :meth:`close`, on leaving a ``with`` block,
    or when the token is garbage collected, whichever comes first.
    """

    def __init__(
        self,
        on_constructed: Optional[Callable[[], object]] = None,
        on_destructed: Optional[Callable[[], object]] = None,
    ) -> None:
        if on_constructed is not None:
            on_constructed()
        self._finalizer = (
            weakref.finalize(self, on_destructed) if on_destructed is not None else None
        )

    def close(self) -> None:
        """Run the teardown callback if it has not run yet."""
        if self._finalizer is not None:
            self._finalizer()

    def __enter__(self) -> "OnceToken":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()