from typing import Any, Dict, List, Optional, Tuple
from time import perf_counter
import inspect
import logging

from ..logs import TqdmLoggingHandler, handler


__all__ = ['ComputationalModel', ]


class ComputationalModel:
    """Base of the simulation drivers.

    A driver declares its configuration in the classmethod `get_options`,
    whose keyword defaults are the default options. The instance owns a
    logger named after the class and a list of stage timings.

    Parameters:
        options (dict | None): Options to override. Missing keys take the
            defaults of `get_options`; unknown keys raise ValueError.
    """
    def __init__(self, options: Optional[Dict[str, Any]] = None) -> None:
        self.options = self._merge_options(options)

        self.logger = logging.getLogger(self.__class__.__name__)
        self.logger.propagate = False
        self.logger.setLevel(self.options['log_level'])
        if not self.logger.handlers:
            if self.options['pbar_log']:
                self.logger.addHandler(TqdmLoggingHandler())
            else:
                self.logger.addHandler(handler)
        self.logger.debug(f"{self.__class__.__name__} options: {self.options}")

        self._stages: List[Tuple[str, float]] = []
        self._clock = perf_counter()

    @classmethod
    def get_options(cls, pbar_log: bool = False, log_level: str = 'WARNING') -> Dict[str, Any]:
        """Default options shared by all drivers."""
        return {'pbar_log': pbar_log, 'log_level': log_level}

    @classmethod
    def _merge_options(cls, options: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        merged = cls.get_options()
        if options is None:
            return merged
        unknown = set(options) - set(merged)
        if unknown:
            raise ValueError(f"Unknown options {sorted(unknown)} for {cls.__name__}, "
                             f"expected a subset of {sorted(merged)}.")
        merged.update(options)
        return merged

    def stage(self, label: str) -> float:
        """Close the stage ending now and return its duration in seconds."""
        now = perf_counter()
        delta = now - self._clock
        self._clock = now
        self._stages.append((label, delta))
        self.logger.info(f"{label}: {delta:.3e} [s]")
        return delta

    def timings(self) -> List[Tuple[str, float]]:
        return list(self._stages)

    @staticmethod
    def _get_func_params(func) -> str:
        sig = inspect.signature(func)
        params = [p.replace(annotation=p.empty) for p in sig.parameters.values()]
        return str(sig.replace(parameters=params, return_annotation=sig.empty))

    @classmethod
    def _help_impl(cls, attr_name: str, show_docs=True, full_docs=False, show_params=True):
        attr = getattr(cls, attr_name, None)
        if not callable(attr):
            return None
        header = attr_name
        if show_params:
            header += " " + cls._get_func_params(attr)
        if not show_docs:
            return header + '\n'

        doc = inspect.getdoc(attr)
        if doc is None:
            doc = 'No description'
        elif not full_docs:
            doc = doc.split('\n')[0]
        return header + '\n    ' + doc

    @classmethod
    def help(cls, name: Optional[str] = None, /, show_docs=True, full_docs=False, show_params=True):
        """Return a help string for the public methods of the driver.

        Parameters:
            name (str | None, optional): Method to describe. If None, all
                public methods are described.
            show_docs (bool, optional): Include the documentation.
            full_docs (bool, optional): Show the whole docstring instead of
                its first line.
            show_params (bool, optional): Include the call signature.

        Returns:
            str | None: The help text, or None if `name` is not a method.
        """
        if name is not None:
            return cls._help_impl(name, show_docs, full_docs, show_params)
        names = (s for s in dir(cls) if not s.startswith('_'))
        infos = (cls._help_impl(s, show_docs, full_docs, show_params) for s in names)
        return '\n\n'.join(info for info in infos if info is not None)
