import time
import logging
from typing import Callable, Optional


def with_retry(fn: Callable, attempts: int, delay: float,
               on_retry: Optional[Callable[[Exception, int], None]] = None,
               sleep: Callable[[float], None] = time.sleep):
    """Call fn until it succeeds, waiting a fixed delay between attempts."""
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except Exception as e:
            if attempt >= attempts:
                raise
            logging.warning(f"🔁 Attempt {attempt}/{attempts} failed: {e}")
            if on_retry is not None:
                on_retry(e, attempt)
            sleep(delay)
