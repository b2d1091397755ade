"""Core modules for the branch back-office dashboard."""

from . import accounts, api, browser, deposits, history, search, synth, timestamps, utils, viz, workflow

__all__ = [
	"accounts",
	"api",
	"browser",
	"deposits",
	"history",
	"search",
	"synth",
	"timestamps",
	"utils",
	"viz",
	"workflow",
]
