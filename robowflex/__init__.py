#!/usr/bin/env python3
"""
Robowflex

A convenience layer over a motion planning stack: planning pipelines,
request building, planning scenes and HDF5 data loading.

This package provides:
- Motion request construction for joint and pose goals
- Planners wrapping a planning plugin (OMPL) in request adapters
- A joint-space robot model and planning scene
- Loading of HDF5 files into in-memory trees

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"

__title__ = "robowflex"
__description__ = "Convenience layer for motion planning"
__license__ = "MIT"
