"""Route blueprints for the Station Portal API"""
