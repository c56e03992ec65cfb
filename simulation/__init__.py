"""
CoinSim market simulation runtime
=================================

Runs the parts of the exchange that live outside a single request.

- **Real-time**: WebSocket fan-out of price and user updates
- **Scheduler**: periodic random-walk price ticks (APScheduler)
- **CLI**: schema creation, coin seeding, manual ticks, server start

Quick start (CLI)
-----------------
    python -m simulation.cli init-db        # create tables + list default coins
    python -m simulation.cli tick --count 5 # move prices without the server
    python -m simulation.cli serve          # run the API with the simulator
"""
