from trackstop_lab.envs.bernoulli import BernoulliBandit

__all__ = ["BernoulliBandit"]
