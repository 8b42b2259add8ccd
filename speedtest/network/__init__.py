"""
Network layer: block recycling and stats notification
"""
from .buffer_pool import BufferPool, Block, PoolClosed
from .channel import StatsChannel, ChannelClosed

__all__ = [
    'BufferPool',
    'Block',
    'PoolClosed',
    'StatsChannel',
    'ChannelClosed',
]
