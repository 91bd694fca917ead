#!/usr/bin/env python3
"""Simple runner script for transcript task-graph extraction."""
from taskgraph.pipeline_main import main

if __name__ == "__main__":
    main()
