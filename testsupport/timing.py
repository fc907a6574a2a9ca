import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def time_things(
    message: str,
    sink: Optional[Callable[[str], None]] = None,
    number_of_runs: Optional[int] = None,
):
    """Report how long the enclosed block took, e.g. a database recreate.

    The line goes to ``sink`` when given, otherwise to this module's logger.
    With ``number_of_runs`` the average per run is reported as well.
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed_ms = (time.perf_counter() - start) * 1000
        line = f"{message} took {elapsed_ms:,.2f} ms"
        if number_of_runs:
            line += f", {number_of_runs} runs, {elapsed_ms / number_of_runs:,.3f} ms per run"
        if sink is not None:
            sink(line)
        else:
            logger.info(line)
