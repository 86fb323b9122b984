"""Instruction payload assembly: serializer, history formatting, assembler."""
