"""Remote provider — Texts served over HTTP."""
