"""
Recurrence date arithmetic.

Month and year steps use relativedelta, which clamps to the last valid
day of the target month: Jan 31 + 1 month is Feb 28 (or 29), and
Feb 29 + 1 year is Feb 28.
"""

from datetime import date
from typing import Optional, Union

from dateutil.relativedelta import relativedelta

from finance_tracker.models.transaction import RecurringFrequency


FREQUENCY_STEPS = {
    RecurringFrequency.DAILY: relativedelta(days=1),
    RecurringFrequency.WEEKLY: relativedelta(weeks=1),
    RecurringFrequency.MONTHLY: relativedelta(months=1),
    RecurringFrequency.YEARLY: relativedelta(years=1),
}


def advance(
    last_date: date,
    frequency: Optional[Union[RecurringFrequency, str]],
) -> date:
    """
    Next occurrence after `last_date` for the given frequency.

    Unknown or missing frequencies use the monthly step.
    """
    step = FREQUENCY_STEPS[RecurringFrequency.parse(frequency)]
    return last_date + step
