"""
Core retrieval engine components.

This package contains the pieces that turn a CloudWatch Logs query into
printed output:
- Backend readers (get-log-events / filter-log-events)
- Pagination stream state machine
- Runner and output sinks
- Execution bridge between the async loop and the CLI
- Remote client construction and error mapping
"""
