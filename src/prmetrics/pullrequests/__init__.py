"""Pull request comments, titles and descriptions."""
