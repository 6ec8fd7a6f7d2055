"""Request and response schemas. JSON uses camelCase; snake_case input is accepted too."""
