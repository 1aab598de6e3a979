"""Click commands for the ommrepo CLI."""
