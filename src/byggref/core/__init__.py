"""Core RefID subsystem, backing stores and RefID-bearing record stores."""
