"""core/ -- Kernel modules shared by every layer (configuration)."""
