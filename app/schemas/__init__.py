from .otp import OtpPurpose, OtpRecord
