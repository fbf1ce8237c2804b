"""
Human-readable order numbers.

Format: {PREFIX}-{YYYYMMDD}-{seq:03d}

Examples:
    ORD-20261019-001
    ORD-20261019-042

The sequence restarts every UTC calendar day and is advanced by the store
inside the creating transaction, so concurrent creators never share a
number and a rolled-back creation does not consume one.
"""

from datetime import UTC, datetime

from order_lifecycle.db.store import UnitOfWork


class OrderNumberGenerator:
    """
    Mints order numbers from the store's day-scoped counter.

    Attributes:
        prefix: Leading token of every number (e.g., "ORD")
        sequence_width: Zero-padding of the daily counter; counters past
                        the padded width keep growing rather than wrap
    """

    def __init__(self, prefix: str = "ORD", sequence_width: int = 3) -> None:
        if not prefix:
            raise ValueError("Prefix cannot be empty")
        if sequence_width < 1:
            raise ValueError("sequence_width must be >= 1")

        self.prefix = prefix
        self.sequence_width = sequence_width

    def format(self, day: datetime, sequence: int) -> str:
        return f"{self.prefix}-{day.strftime('%Y%m%d')}-{sequence:0{self.sequence_width}d}"

    async def next_number(self, uow: UnitOfWork, now: datetime | None = None) -> str:
        """
        Advance today's counter and return the formatted order number.

        Must be called inside the transaction that inserts the order.
        """
        day = (now or datetime.now(UTC)).astimezone(UTC)
        sequence = await uow.sequences.next_value(day)
        return self.format(day, sequence)
