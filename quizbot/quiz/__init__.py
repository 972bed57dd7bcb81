"""Quiz engine: authoring, answering, scoring, bonus and grading."""
