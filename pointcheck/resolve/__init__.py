"""Table resolution for local frames, delimited files and databases."""
