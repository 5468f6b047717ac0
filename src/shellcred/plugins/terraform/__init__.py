"""Terraform, reusing the AWS access key credential type."""

from shellcred.plugins.terraform.plugin import new

__all__ = ["new"]
