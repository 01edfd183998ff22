"""System configurator — accounts, permissions, database, scanner, manager and units."""
