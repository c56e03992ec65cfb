"""
Real-time market runtime.

Provides:
- **MarketStreamManager**: WebSocket broadcast of `priceUpdate` and
  `userUpdate` events to every connected client.
- **PriceSimulationScheduler**: APScheduler job running the price
  simulator tick on a fixed interval.
"""

from simulation.realtime.scheduler import PriceSimulationScheduler
from simulation.realtime.stream import MarketStreamManager

__all__ = [
    "PriceSimulationScheduler",
    "MarketStreamManager",
]
