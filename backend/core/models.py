from django.db import models, transaction


class NumberSequence(models.Model):
    """Counter behind human-readable numbers such as booking and ticket numbers."""

    series_key = models.CharField(max_length=50, unique=True)
    last_value = models.PositiveIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["series_key"]

    def __str__(self):
        return f"{self.series_key} @ {self.last_value}"

    @classmethod
    def next_value(cls, series_key: str) -> int:
        """
        Reserve the next value in ``series_key``.

        The counter row stays locked until the surrounding transaction ends, so
        concurrent callers receive distinct values.
        """

        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("NumberSequence.next_value must run inside transaction.atomic().")
        cls.objects.get_or_create(series_key=series_key)
        sequence = cls.objects.select_for_update().get(series_key=series_key)
        sequence.last_value += 1
        sequence.save(update_fields=["last_value", "updated_at"])
        return sequence.last_value
