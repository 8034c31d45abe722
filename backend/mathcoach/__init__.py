"""MathCoach — backend for a Socratic math tutor aimed at primary-school pupils.

A photo of a problem becomes an analysis, three guided question rounds and a
scored learning report. Import side effects are not allowed in this package root.
"""
