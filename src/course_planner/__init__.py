"""
Course Planner backend package.

Import the FastAPI application from `course_planner.main`.
"""
