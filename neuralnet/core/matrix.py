"""Dense 2-D matrix primitive used by every layer, loss and optimizer."""

from __future__ import annotations

from numbers import Real
from typing import Callable, Iterable, Sequence

import numpy as np

from .errors import ShapeMismatch
from .types import Array


def _as_buffer(values) -> Array:
    if isinstance(values, Matrix):
        return values.to_numpy()
    buffer = np.array(values, dtype=np.float64)
    if buffer.ndim != 2:
        raise ShapeMismatch(f"Matrix requires 2-D data, got array with shape {buffer.shape}")
    return buffer


class Matrix:
    """Immutable-by-convention 2-D float64 buffer.

    Operators always return a new :class:`Matrix`. The only mutating
    operations are ``+=``, ``-=`` and :meth:`assign`, which layers and
    optimizers use on parameter matrices they own.
    """

    __slots__ = ("_data",)
    __array_ufunc__ = None  # ndarray operands defer to Matrix operators

    def __init__(self, values) -> None:
        self._data = _as_buffer(values)

    # ------------------------------------------------------------------
    # Construction helpers

    @classmethod
    def zeros(cls, rows: int, cols: int) -> "Matrix":
        return cls(np.zeros((rows, cols), dtype=np.float64))

    @classmethod
    def ones(cls, rows: int, cols: int) -> "Matrix":
        return cls(np.ones((rows, cols), dtype=np.float64))

    @classmethod
    def full(cls, rows: int, cols: int, value: float) -> "Matrix":
        return cls(np.full((rows, cols), float(value), dtype=np.float64))

    @classmethod
    def row(cls, values: Iterable[float]) -> "Matrix":
        return cls(np.asarray(list(values), dtype=np.float64).reshape(1, -1))

    @classmethod
    def column(cls, values: Iterable[float]) -> "Matrix":
        return cls(np.asarray(list(values), dtype=np.float64).reshape(-1, 1))

    @classmethod
    def random_uniform(
        cls, rows: int, cols: int, limit: float, rng: np.random.Generator
    ) -> "Matrix":
        return cls(rng.uniform(-limit, limit, size=(rows, cols)))

    @classmethod
    def vstack(cls, matrices: Sequence["Matrix"]) -> "Matrix":
        if not matrices:
            raise ShapeMismatch("Cannot stack an empty sequence of matrices")
        cols = {m.cols for m in matrices}
        if len(cols) != 1:
            raise ShapeMismatch(f"Cannot stack matrices with column counts {sorted(cols)}")
        return cls(np.vstack([m._data for m in matrices]))

    @classmethod
    def _wrap(cls, buffer: Array) -> "Matrix":
        out = cls.__new__(cls)
        out._data = buffer
        return out

    # ------------------------------------------------------------------
    # Introspection

    @property
    def shape(self) -> tuple[int, int]:
        return self._data.shape  # type: ignore[return-value]

    @property
    def rows(self) -> int:
        return int(self._data.shape[0])

    @property
    def cols(self) -> int:
        return int(self._data.shape[1])

    @property
    def size(self) -> int:
        return int(self._data.size)

    @property
    def array(self) -> Array:
        """Read-only view of the underlying buffer."""

        view = self._data.view()
        view.flags.writeable = False
        return view

    def to_numpy(self) -> Array:
        return self._data.copy()

    def __array__(self, dtype=None, copy=None):
        if dtype is None:
            return self._data.copy()
        return self._data.astype(dtype)

    def __repr__(self) -> str:
        return f"Matrix(shape={self.shape}, values={self._data.tolist()!r})"

    def __len__(self) -> int:
        return self.rows

    # ------------------------------------------------------------------
    # Element-wise arithmetic

    def _require_same_shape(self, other: "Matrix", op: str) -> None:
        if self.shape != other.shape:
            raise ShapeMismatch(
                f"Cannot {op} matrices of shape {self.shape} and {other.shape}"
            )

    def _binary(self, other, op: str, fn: Callable[[Array, Array], Array]) -> "Matrix":
        if isinstance(other, Matrix):
            self._require_same_shape(other, op)
            return Matrix._wrap(fn(self._data, other._data))
        if isinstance(other, Real):
            return Matrix._wrap(fn(self._data, float(other)))
        return NotImplemented

    def __add__(self, other) -> "Matrix":
        return self._binary(other, "add", np.add)

    def __radd__(self, other) -> "Matrix":
        return self._binary(other, "add", np.add)

    def __sub__(self, other) -> "Matrix":
        return self._binary(other, "subtract", np.subtract)

    def __rsub__(self, other) -> "Matrix":
        if isinstance(other, Real):
            return Matrix._wrap(float(other) - self._data)
        return NotImplemented

    def __mul__(self, other) -> "Matrix":
        return self._binary(other, "multiply", np.multiply)

    def __rmul__(self, other) -> "Matrix":
        return self._binary(other, "multiply", np.multiply)

    def __truediv__(self, other) -> "Matrix":
        return self._binary(other, "divide", np.divide)

    def __rtruediv__(self, other) -> "Matrix":
        if isinstance(other, Real):
            return Matrix._wrap(float(other) / self._data)
        return NotImplemented

    def __neg__(self) -> "Matrix":
        return Matrix._wrap(-self._data)

    def __pow__(self, exponent) -> "Matrix":
        if isinstance(exponent, Real):
            return Matrix._wrap(np.power(self._data, float(exponent)))
        return NotImplemented

    # ------------------------------------------------------------------
    # In-place updates for owned parameters

    def __iadd__(self, other) -> "Matrix":
        if isinstance(other, Matrix):
            self._require_same_shape(other, "add")
            self._data += other._data
        elif isinstance(other, Real):
            self._data += float(other)
        else:
            return NotImplemented
        return self

    def __isub__(self, other) -> "Matrix":
        if isinstance(other, Matrix):
            self._require_same_shape(other, "subtract")
            self._data -= other._data
        elif isinstance(other, Real):
            self._data -= float(other)
        else:
            return NotImplemented
        return self

    def assign(self, other) -> None:
        """Overwrite the buffer in place with ``other`` of identical shape."""

        values = other if isinstance(other, Matrix) else Matrix(other)
        self._require_same_shape(values, "assign")
        self._data[...] = values._data

    # ------------------------------------------------------------------
    # Linear algebra

    def __matmul__(self, other) -> "Matrix":
        if not isinstance(other, Matrix):
            return NotImplemented
        if self.cols != other.rows:
            raise ShapeMismatch(
                f"Cannot multiply {self.shape} by {other.shape}: inner dimensions differ"
            )
        return Matrix._wrap(self._data @ other._data)

    def matmul(self, other: "Matrix") -> "Matrix":
        return self @ other

    def transpose(self) -> "Matrix":
        return Matrix._wrap(self._data.T.copy())

    @property
    def T(self) -> "Matrix":
        return self.transpose()

    def add_row(self, row: "Matrix") -> "Matrix":
        """Add a ``[1, cols]`` row vector to every row (bias broadcast)."""

        if row.shape != (1, self.cols):
            raise ShapeMismatch(
                f"Row broadcast expects shape (1, {self.cols}), got {row.shape}"
            )
        return Matrix._wrap(self._data + row._data)

    # ------------------------------------------------------------------
    # Reductions and maps

    def sum(self, axis: int | None = None):
        if axis is None:
            return float(self._data.sum())
        return Matrix._wrap(self._data.sum(axis=axis, keepdims=True))

    def mean(self, axis: int | None = None):
        if axis is None:
            return float(self._data.mean())
        return Matrix._wrap(self._data.mean(axis=axis, keepdims=True))

    def apply(self, fn: Callable[[Array], Array]) -> "Matrix":
        result = np.asarray(fn(self._data), dtype=np.float64)
        if result.shape != self.shape:
            raise ShapeMismatch(
                f"Mapped function changed shape from {self.shape} to {result.shape}"
            )
        return Matrix._wrap(result)

    def argmax(self, axis: int = 1) -> Array:
        return np.argmax(self._data, axis=axis)

    def take_rows(self, indices: Sequence[int] | Array) -> "Matrix":
        return Matrix._wrap(self._data[np.asarray(indices, dtype=np.int64)])

    def allclose(self, other, atol: float = 1e-8, rtol: float = 1e-5) -> bool:
        values = other if isinstance(other, Matrix) else Matrix(other)
        if self.shape != values.shape:
            return False
        return bool(np.allclose(self._data, values._data, atol=atol, rtol=rtol))

    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self._data)))


def as_matrix(values) -> Matrix:
    """Return ``values`` unchanged if already a :class:`Matrix`, else wrap it."""

    if isinstance(values, Matrix):
        return values
    return Matrix(values)


__all__ = ["Matrix", "as_matrix"]
