"""Test package for Math Arcade.

Core tests drive the session engine with a fake clock and never touch pygame.
The smoke tests run the pygame shell with SDL's dummy video/audio drivers so
no real window opens.  Run ``pytest`` from the project root.
"""
