#!/usr/bin/env python3
"""
TMPack

Task-and-motion planning on top of robowflex: a task plan of goal
configurations is planned goal by goal, with domain callbacks adjusting the
request and scene between plans.

Author: Robot Control Team
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "Robot Control Team"
