"""Administrative command line tooling."""
