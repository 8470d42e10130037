"""Commentary provider — Remote commentary collections."""
