"""Domain checkers, one per resource category"""
