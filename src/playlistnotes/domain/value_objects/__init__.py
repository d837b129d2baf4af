"""Value objects and pure helpers of the import domain."""
