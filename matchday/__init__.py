"""Matchday: ciclo di vita dei match amatoriali e voto MVP."""
