"""Teller rotation package.

Daily teller rotation and attendance scheduling engine, organized by feature
modules (workers, assignments, activity, scoring, selection, rotation) with
SOLID service/repository layers. Transport and UI live outside this package.
"""
