"""
Test suite for the airspace traffic simulator.

This package contains tests for:
- Aircraft kinematics, fix homing and the runway intercept
- Separation monitoring
- Command parsing and the command engine
- The traffic controller session loop
- Configuration, airspace layouts and the gymnasium environment
"""
