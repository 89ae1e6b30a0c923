from .calibration_screen import CalibrationScreen

__all__ = ['CalibrationScreen']
