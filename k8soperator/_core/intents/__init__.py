"""
The intents of the operators' authors, as expressed outside of the code:
e.g. the cluster credentials in the environment (kubeconfigs, service accounts).
"""
