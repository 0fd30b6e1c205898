"""Small helper for assembling ffmpeg ``-filter_complex`` graphs."""


def fmt_time(seconds: float) -> str:
    """Fixed-precision seconds, so identical plans render identical text."""
    return f"{seconds:.6f}"


class FilterGraphBuilder:
    """Collects filter chains and hands out unique pad labels."""

    def __init__(self) -> None:
        self._chains: list[str] = []
        self._counter = 0

    def label(self, prefix: str) -> str:
        label = f"{prefix}{self._counter}"
        self._counter += 1
        return label

    def add(self, inputs: list[str], chain: str, output: str) -> str:
        """Append ``[in...]chain[out]`` and return the output label."""
        self.add_multi(inputs, chain, [output])
        return output

    def add_multi(self, inputs: list[str], chain: str, outputs: list[str]) -> list[str]:
        """Append a filter with several output pads (e.g. ``concat`` with v+a)."""
        pads_in = "".join(f"[{pad}]" for pad in inputs)
        pads_out = "".join(f"[{pad}]" for pad in outputs)
        self._chains.append(f"{pads_in}{chain}{pads_out}")
        return outputs

    def chain(self, inputs: list[str], filters: list[str], prefix: str) -> str:
        """Append a comma-joined filter chain under a fresh label."""
        return self.add(inputs, ",".join(filters), self.label(prefix))

    def render(self) -> str:
        return ";".join(self._chains)

    def __len__(self) -> int:
        return len(self._chains)
