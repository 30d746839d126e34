"""Protocol account layouts."""
