"""Pure domain layer: clock, decimal arithmetic, balance rules, DTOs."""
