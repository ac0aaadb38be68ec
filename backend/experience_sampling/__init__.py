"""Experience Sampling - survey gating and delivery service"""
