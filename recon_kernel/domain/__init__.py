"""Pure domain layer: DTOs, numeric coercion, order codes, clock."""
