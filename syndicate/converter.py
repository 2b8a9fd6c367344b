from typing import Any, Dict

from syndicate.models.schema_models import HotspotSchema, PlayerSchema


class DataConverter:
    """Builds the payloads pushed to clients from stored rows."""

    @staticmethod
    def hotspot_event(hotspot: HotspotSchema) -> Dict[str, Any]:
        return {"hotspot": hotspot.model_dump()}

    @staticmethod
    def territory_notice(
        hotspot: HotspotSchema, actor: PlayerSchema, message: str
    ) -> Dict[str, Any]:
        return {
            "type": "territory",
            "hotspot_id": hotspot.id,
            "hotspot_name": hotspot.name,
            "actor_id": actor.id,
            "actor_name": actor.name,
            "message": message,
        }
