"""Approval, resubmission and listing logic on top of the upstream client."""
