"""flowmap User Configuration.

This is the user-facing configuration file. Modify settings here to point
the pipeline at your flow table and geometry layers. Advanced settings are
in src/flowmap/schemas/param.py

Usage:
    python scripts/run_flowmap_pipeline.py scripts/user_config.py
    python scripts/run_flowmap_pipeline.py scripts/user_config.py --dump
"""

CONFIG = {
    # ========================================================================
    # FLOW TABLE
    # ========================================================================
    "TABLE_PATH": "public/0_KERN_RIVER_MASTER_DATA_rev6.csv",
    "ID_COLUMN": "MapID",     # Identifier column joined against the layers

    # ========================================================================
    # GEOMETRY SOURCES (path, type override)
    # ========================================================================
    # None lets the classifier decide from the path: "point"/"weir" -> weir,
    # "canal" -> canal, "river" -> river, anything else -> canal.
    "SOURCES": [
        ("public/Canals_KernRiver_Merged_rev/Canals_KernRiver_Merged_rev.shp", None),
        ("public/NHDStreamRiverKernRiver_rev/NHDStreamRiverKernRiver_rev.shp", "river"),
        ("public/Points_Metro_Bak_Canals_Rev/Points_Metro_Bak_Canals_Rev.shp", "weir"),
    ],

    # ========================================================================
    # ATTRIBUTE ALIASES (tried in order)
    # ========================================================================
    "ID_KEYS": ["MAPID", "MapID", "mapid", "SiteID", "SITEID"],
    "NAME_KEYS": ["NAME", "Name", "SiteName", "GNIS_Name"],

    # ========================================================================
    # FETCHING & LOGGING
    # ========================================================================
    "MAX_WORKERS": 3,         # One per geometry source
    "TIMEOUT_SEC": 30,        # HTTP timeout for URL sources
    "LOG_LEVEL": "INFO",
}
