"""reqrox test suite."""
