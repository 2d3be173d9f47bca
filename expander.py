from typing import List

from errors import InvalidRepeats, TooManyRepeats
from timerange import TimeRange


def expand_weekly(base: TimeRange, repeats: int, limit: int) -> List[TimeRange]:
    """Return ``repeats`` copies of ``base``, each one week after the previous.

    The first element is ``base`` itself. Fails before producing anything when
    ``repeats`` is below 1 or above ``limit``.
    """
    if repeats < 1:
        raise InvalidRepeats()
    if repeats > limit:
        raise TooManyRepeats()
    return [base.shift_weeks(i) for i in range(repeats)]
