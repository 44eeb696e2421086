"""Greedy bin packing of pods onto provisional nodes."""
