from ninja import ModelSchema

from events.models import Event


class EventSchema(ModelSchema):
    spots_remaining: int | None = None

    class Meta:
        model = Event
        fields = [
            "id",
            "name",
            "slug",
            "status",
            "start",
            "end",
            "base_price",
            "currency",
            "max_capacity",
            "registered_count",
        ]
