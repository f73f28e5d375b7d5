"""
subutil — Subtitle timing utilities

Modules:
  - subtitle: SubtitleEntry record
  - srt_reader: Streaming SRT decoder with line-ending detection
  - srt_writer: SRT encoder with newline normalization
  - timing: Constant shift and anchored piecewise-linear retiming
  - ring_buffer: Fixed-capacity byte buffer for binary streams
  - pgs: PGS segment reader and forced-subtitle tally
  - orchestrator: Per-tool read → transform → write flows
"""
