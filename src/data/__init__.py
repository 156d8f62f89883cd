"""Domain schema and static reference data"""
