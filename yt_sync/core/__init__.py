"""
Core sync engine.

The `SyncOrchestrator` drives each target through its state machine. It asks
the reconciler for a plan, hands the plan's downloads to the
`DownloadExecutor` and writes the manifest once every download has resolved.
"""
