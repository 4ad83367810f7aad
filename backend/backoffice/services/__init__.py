"""Business services. Every function takes an explicit ``db: Session`` first."""
