"""Pure domain layer: values, clock, ports, events and DTOs."""
