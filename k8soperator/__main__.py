"""
CLI entry point, when used as a module: `python -m k8soperator`.

Useful for debugging in the IDEs (use the start-mode "Module", module "k8soperator").
"""
from k8soperator import cli

if __name__ == '__main__':
    cli.main()
