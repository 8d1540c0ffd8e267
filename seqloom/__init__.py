"""SeqLoom - PlantUML sequence diagrams from C# call structure."""

__version__ = "0.1.0"
