"""Bitcoin Average: средний исторический курс биткоина."""
