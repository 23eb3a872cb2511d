"""Clone, refresh, branch, commit and push project checkouts."""
