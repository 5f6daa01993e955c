"""Transform stages live here.

Each module declares one async stage function decorated with
`@assetpipe.core.stage(name=...)`. Stages are wired into pipelines by
`assetpipe.registry`, never at import time.
"""
