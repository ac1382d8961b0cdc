"""aws-eni modules"""
