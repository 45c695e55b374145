"""Grid layout engine.

annotate() ranks the tasks reachable from a root; allocate() places them on
a fixed-width grid, root centered in row 0 and requirements below the tasks
that need them.
"""
