"""Park Patrol backend."""
