from .handlers import VentBot, update_actor_id
from .runner import PollingRunner, create_runner

__all__ = ["VentBot", "update_actor_id", "PollingRunner", "create_runner"]
