"""portal/ -- Program applications submitted by students.

Layer rule: portal/ imports only stdlib + third-party libraries + core/.
"""
