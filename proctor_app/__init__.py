"""
Proctor App
pygame front end for the proctoring calibration session.
"""
