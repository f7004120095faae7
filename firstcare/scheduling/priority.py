"""Priority scoring used to rank booking demand."""

from collections.abc import Iterable
from datetime import datetime

from firstcare.config import DEFAULT_RURAL_DISTRICTS
from firstcare.scheduling import calendar
from firstcare.schemas.appointments import Appointment, Urgency

URGENCY_SCORES = {
    Urgency.EMERGENCY: 100,
    Urgency.URGENT: 50,
    Urgency.ROUTINE: 10,
}
PUBLIC_EMERGENCY_BONUS = 30
RECENCY_CEILING = 50
RECENCY_DECAY_PER_DAY = 2
RURAL_BONUS = 15


def priority_score(
    appointment: Appointment,
    now: datetime,
    rural_districts: Iterable[str] = DEFAULT_RURAL_DISTRICTS,
) -> int:
    """
    Calculate the priority score of an appointment.

    Higher is more urgent. The score is derived on demand and never stored.

    Args:
        appointment: Appointment to score
        now: Current wall-clock time
        rural_districts: District codes that receive the remoteness bonus

    Returns:
        Unbounded integer score
    """
    score: float = URGENCY_SCORES.get(appointment.urgency, 0)

    if appointment.urgency == Urgency.EMERGENCY and appointment.facility_type.is_public:
        score += PUBLIC_EMERGENCY_BONUS

    # Measured from midnight of the appointment date
    days_until = calendar.days_between(now, datetime.combine(appointment.date, datetime.min.time()))
    score += max(0, RECENCY_CEILING - RECENCY_DECAY_PER_DAY * days_until)

    if appointment.district.value in set(rural_districts):
        score += RURAL_BONUS

    return round(score)


def rank(
    appointments: Iterable[Appointment],
    now: datetime,
    rural_districts: Iterable[str] = DEFAULT_RURAL_DISTRICTS,
) -> list[Appointment]:
    """Order appointments by descending priority, keeping input order on ties."""
    rural = list(rural_districts)
    return sorted(appointments, key=lambda item: -priority_score(item, now, rural))
