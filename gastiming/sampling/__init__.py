"""Differential, adaptively sampled timing of VM programs.

Implements:
  - Paired baseline/target sampling against cloned initial stacks
  - Running sums with first-nonzero-wins status folding
  - Time-budgeted stopping with a sample floor and a hard cap
  - Population mean/stddev and the overall error flag
"""
