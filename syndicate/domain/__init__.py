"""Domain layer (pure logic).

- Keep game rules and calculations here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no event bus.
- Randomness and time are passed in as arguments; every roll goes through
  the injected generator so outcomes are reproducible under a fixed seed.
"""
