"""
PlanterPlan Core — pure, synchronous functions over flat task lists.

    tree         — TreeBuilder: flat list <-> nested hierarchy, subtree cloning
    graph        — TaskGraph: parent/child graph queries (networkx)
    positions    — PositionAllocator: sparse sibling sort keys
    drop_target  — drag-and-drop target resolution
    schedule     — ScheduleCascade: start-date shift propagation
    dates        — calendar-date parsing

Nothing here performs I/O or raises for malformed data.
"""
