"""Provider calling: assistant configs, call routing, simulation and result caching."""
