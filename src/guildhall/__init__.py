"""guildhall - community and course access control."""
