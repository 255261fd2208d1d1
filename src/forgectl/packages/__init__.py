"""Package layer: the shared install tree and dependency synchronization.

pip is only ever run through PackageManager's injectable runner.
"""
