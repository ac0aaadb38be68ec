"""Experience Sampling - Services"""
