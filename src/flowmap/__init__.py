"""`flowmap` - historical water-flow features for river, canal and weir maps.

Subpackages:
- data: Flow table parsing, geometry sources, classification, normalization
- pipeline: Reconciliation engine, background worker, single-flight store
- schemas: Layered pydantic configuration
- contracts: Stage invariants

Authors: Bhupendra Raut and Sid Gupta
"""

__version__ = "0.1.0"
