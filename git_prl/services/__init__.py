"""Services for git-prl."""
