"""Accumulation buffer for progressive rendering.

Every pixel owns one slot of a float RGBA running sum. Each render pass adds
one sample per pixel; ``compute_display`` divides the sums by the frame index
and packs the average into 8-bit RGBA words for presentation.

Packed layout (little-endian byte order R, G, B, A):
    word = r | (g << 8) | (b << 16) | (a << 24)

The buffers always hold exactly ``width * height`` pixels. Resizing reallocates
them and resets the frame index to 1.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from spheretracer.core.accumulation import AccumulationBuffer
    >>> buffer = AccumulationBuffer(4, 4)
    >>> buffer.accumulate(0, (1.0, 0.5, 0.0, 1.0))
    >>> buffer.compute_display()
    >>> hex(int(buffer.get_image_data_numpy()[0]))
    '0xff007fff'
"""

import numpy as np
import numpy.typing as npt
import taichi as ti
import taichi.math as tm

# Type alias for RGBA colors
vec4 = tm.vec4


@ti.func
def accumulate_sample(accumulation: ti.template(), pixel_index: ti.i32, color: vec4):
    """Add one sample to a pixel's running sum.

    Negative components and NaN/Inf values are replaced with zero first so a
    single bad sample cannot poison the average.
    """
    sample = tm.max(color, vec4(0.0, 0.0, 0.0, 0.0))
    for c in ti.static(range(4)):
        if tm.isnan(sample[c]) or tm.isinf(sample[c]):
            sample[c] = 0.0
    accumulation[pixel_index] += sample


@ti.func
def pack_rgba(color: vec4) -> ti.u32:
    """Convert a float RGBA color to a packed 8-bit-per-channel word.

    Each channel is clamped to [0, 1] and scaled to [0, 255] (truncating).
    """
    c = tm.clamp(color, 0.0, 1.0)
    r = ti.cast(c.x * 255.0, ti.u32)
    g = ti.cast(c.y * 255.0, ti.u32)
    b = ti.cast(c.z * 255.0, ti.u32)
    a = ti.cast(c.w * 255.0, ti.u32)
    return (
        (a << ti.cast(24, ti.u32))
        | (b << ti.cast(16, ti.u32))
        | (g << ti.cast(8, ti.u32))
        | r
    )


@ti.kernel
def _accumulate_kernel(accumulation: ti.template(), pixel_index: ti.i32, color: vec4):
    accumulate_sample(accumulation, pixel_index, color)


@ti.kernel
def _compute_display_kernel(
    accumulation: ti.template(), image_data: ti.template(), frame_index: ti.i32
):
    divisor = ti.cast(frame_index, ti.f32)
    for i in accumulation:
        image_data[i] = pack_rgba(accumulation[i] / divisor)


class AccumulationBuffer:
    """Running per-pixel color sums plus the packed display image.

    Attributes:
        accumulation: Taichi field of vec4 running sums, one per pixel, or
            None while the buffer has zero area.
        image_data: Taichi field of packed u32 RGBA display colors, one per
            pixel, or None while the buffer has zero area.
    """

    def __init__(self, width: int = 0, height: int = 0) -> None:
        """Create the buffer and allocate it for the given size.

        Args:
            width: Width in pixels.
            height: Height in pixels.

        Raises:
            ValueError: If either dimension is negative.
        """
        self._width = 0
        self._height = 0
        self._frame_index = 1
        self._snode_tree = None
        self.accumulation = None
        self.image_data = None
        self.resize(width, height)

    @property
    def width(self) -> int:
        """Get the buffer width."""
        return self._width

    @property
    def height(self) -> int:
        """Get the buffer height."""
        return self._height

    @property
    def pixel_count(self) -> int:
        """Number of pixels the buffers hold."""
        return self._width * self._height

    @property
    def frame_index(self) -> int:
        """The divisor used for averaging. Always at least 1."""
        return self._frame_index

    def advance_frame(self) -> None:
        """Count one more completed accumulation pass."""
        self._frame_index += 1

    def rewind_frame(self) -> None:
        """Pin the frame index at 1 so the next pass overwrites the sums."""
        self._frame_index = 1

    def resize(self, width: int, height: int) -> None:
        """Reallocate both buffers for a new size and reset.

        A zero width or height releases the buffers; the object then reports
        a pixel count of 0 until it is resized again.

        Args:
            width: New width in pixels.
            height: New height in pixels.

        Raises:
            ValueError: If either dimension is negative.
        """
        if width < 0 or height < 0:
            raise ValueError(f"Buffer dimensions must be non-negative, got {width}x{height}")

        if self._snode_tree is not None:
            self._snode_tree.destroy()
            self._snode_tree = None
        self.accumulation = None
        self.image_data = None

        self._width = width
        self._height = height

        if width > 0 and height > 0:
            builder = ti.FieldsBuilder()
            accumulation = ti.Vector.field(4, dtype=ti.f32)
            image_data = ti.field(dtype=ti.u32)
            builder.dense(ti.i, width * height).place(accumulation)
            builder.dense(ti.i, width * height).place(image_data)
            self._snode_tree = builder.finalize()
            self.accumulation = accumulation
            self.image_data = image_data
            image_data.fill(0)

        self.reset()

    def reset(self) -> None:
        """Zero all running sums and set the frame index back to 1."""
        if self.accumulation is not None:
            self.accumulation.fill(0.0)
        self._frame_index = 1

    def accumulate(self, pixel_index: int, color: tuple[float, float, float, float]) -> None:
        """Add a sample color into one pixel's running sum.

        Args:
            pixel_index: Flat pixel index ``x + y * width``.
            color: RGBA sample. Negative components are clamped to zero.

        Raises:
            IndexError: If the pixel index is outside the buffer.
        """
        if not 0 <= pixel_index < self.pixel_count:
            raise IndexError(
                f"Pixel index {pixel_index} out of range for {self._width}x{self._height} buffer"
            )
        _accumulate_kernel(self.accumulation, pixel_index, vec4(*color))

    def compute_display(self) -> None:
        """Average the running sums and write the packed display buffer."""
        if self.accumulation is None:
            return
        _compute_display_kernel(self.accumulation, self.image_data, self._frame_index)

    def get_accumulation_numpy(self) -> npt.NDArray[np.float32]:
        """Copy the running sums to NumPy, shape (width * height, 4)."""
        if self.accumulation is None:
            return np.zeros((0, 4), dtype=np.float32)
        return self.accumulation.to_numpy()

    def get_image_data_numpy(self) -> npt.NDArray[np.uint32]:
        """Copy the packed display colors to NumPy, shape (width * height,)."""
        if self.image_data is None:
            return np.zeros(0, dtype=np.uint32)
        return self.image_data.to_numpy()

    def __repr__(self) -> str:
        """Return a string representation of the buffer state."""
        return (
            f"AccumulationBuffer(width={self._width}, height={self._height}, "
            f"frame_index={self._frame_index})"
        )
