"""
ssm-ssh-connect: SSH ProxyCommand that reaches EC2 instances through
SSM Session Manager and EC2 Instance Connect.
"""
