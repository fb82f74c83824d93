"""Configuration package for the inventory extraction backend.

- config.py: configuration dataclasses and the hierarchical loader
- service.py: flat facade over the loaded configuration
- *.json: unit, number, action and ASR-correction vocabularies plus a sample catalog
"""
